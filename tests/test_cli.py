import json

from keyforge.cli import main


def test_algorithms_lists_options(capsys):
    assert main(["algorithms"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert "AES-256-GCM" in out
    assert "SSH-ECDSA-P256" in out


def test_algorithms_json(capsys):
    assert main(["algorithms", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert {"value", "label", "group"} <= set(data["options"][0])
    assert ["P-384", "NIST P-384"] in data["key_sizes"]["ECDSA"]
    assert data["size_descriptions"]["P-256"].startswith("Equivalent to ~3072-bit RSA")
    groups = {g["group"]: g for g in data["usage_groups"]}
    assert groups["Symmetric Encryption"]["title"] == "About Symmetric Encryption"
    assert {o["group"] for o in data["options"]} <= set(groups)


def test_generate_and_inspect(tmp_path, capsys):
    assert main(["generate", "ECDSA-P-384", "--format", "jwk", "--private"]) == 0
    jwk_text = capsys.readouterr().out
    path = tmp_path / "key.jwk"
    path.write_text(jwk_text)

    assert main(["inspect", "--input", str(path)]) == 0
    props = json.loads(capsys.readouterr().out)
    assert props["type"] == "private"
    assert props["algorithm"] == "ECDSA"
    assert props["size"] == "P-384"


def test_convert_to_openssh_and_back(tmp_path, capsys):
    assert main(["generate", "SSH-ECDSA-P256", "--format", "openssh-private-v1", "--comment", "cli@test"]) == 0
    path = tmp_path / "id_ecdsa"
    path.write_text(capsys.readouterr().out)

    assert main(["convert", "--input", str(path), "--format", "ssh-public", "--public", "--comment", "cli@test"]) == 0
    line = capsys.readouterr().out.strip()
    assert line.startswith("ecdsa-sha2-nistp256 ")
    assert line.endswith(" cli@test")


def test_generate_symmetric_display(capsys):
    assert main(["generate", "AES-128-GCM"]) == 0
    assert len(capsys.readouterr().out.strip()) == 24


def test_error_exit_code(tmp_path, capsys):
    path = tmp_path / "junk.txt"
    path.write_text("this is not a key!")
    assert main(["inspect", "--input", str(path)]) == 1
    assert capsys.readouterr().err.startswith("error: ")


def test_missing_file(capsys):
    assert main(["inspect", "--input", "/nonexistent/key.pem"]) == 1
    assert "error:" in capsys.readouterr().err


def test_wrong_format_for_key(capsys):
    assert main(["generate", "AES-256-GCM", "--format", "ssh-public"]) == 1
    assert "Unsupported key type" in capsys.readouterr().err
