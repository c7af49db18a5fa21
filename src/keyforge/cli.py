from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import logging
import sys
from pathlib import Path

from .codec.encoders import KeyFormat
from .config import load_settings
from .crypto.alg_registry import (
    ALGORITHM_OPTIONS,
    KEY_SIZE_DESCRIPTIONS,
    KEY_SIZE_OPTIONS,
    USAGE_GROUPS,
    supported_options,
)
from .crypto.handles import KeyHandle, PgpOptions
from .crypto.pgp import PgpyProvider
from .crypto.webcrypto import CryptographyProvider
from .errors import KeyforgeError
from .service import KeyService, is_ssh_container
from .utils.logging import get_logger

FORMAT_CHOICES = [f.value for f in KeyFormat]


def _service() -> KeyService:
    return KeyService(CryptographyProvider(), PgpyProvider(), load_settings())


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text()


async def _load_key(service: KeyService, text: str):
    if is_ssh_container(text):
        return await service.import_ssh_key(text)
    return await service.import_key(text)


def cmd_generate(args: argparse.Namespace) -> int:
    service = _service()
    pgp_options = None
    if args.name or args.email:
        pgp_options = PgpOptions(name=args.name or "", email=args.email or "", passphrase=args.passphrase)

    async def run() -> str:
        result = await service.generate(args.algorithm, pgp_options)
        if args.format is None:
            return result.display_value
        serialized = await service.export_generated(result, args.format, args.comment, private=args.private)
        return serialized.text

    print(asyncio.run(run()))
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    service = _service()
    text = _read_input(args.input)

    async def run():
        key = await _load_key(service, text)
        return await service.inspect(key)

    props = asyncio.run(run())
    print(props.model_dump_json(indent=2))
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    service = _service()
    text = _read_input(args.input)

    async def run() -> str:
        key = await _load_key(service, text)
        if args.public and isinstance(key, KeyHandle):
            key = await service.public_handle_for(key)
        serialized = await service.export_key(key, args.format, args.comment)
        return serialized.text

    print(asyncio.run(run()))
    return 0


def cmd_algorithms(args: argparse.Namespace) -> int:
    if args.json:
        catalog = {
            "options": [{"value": o.value, "label": o.label, "group": o.group} for o in ALGORITHM_OPTIONS],
            "key_sizes": {k: [list(pair) for pair in v] for k, v in KEY_SIZE_OPTIONS.items()},
            "size_descriptions": dict(KEY_SIZE_DESCRIPTIONS),
            "usage_groups": [dataclasses.asdict(g) for g in USAGE_GROUPS],
        }
        print(json.dumps(catalog, indent=2))
        return 0
    for option in supported_options():
        print(option)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("keyforge")
    p.add_argument("--verbose", "-v", action="store_true", help="log progress to stdout")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_gen = sub.add_parser("generate")
    p_gen.add_argument("algorithm", help="e.g. AES-256-GCM, RSA-OAEP-SHA-256-2048, SSH-ECDSA-P256")
    p_gen.add_argument("--format", choices=FORMAT_CHOICES, default=None)
    p_gen.add_argument("--private", action="store_true", help="export the private half where it is ambiguous")
    p_gen.add_argument("--comment", default=None)
    p_gen.add_argument("--name")
    p_gen.add_argument("--email")
    p_gen.add_argument("--passphrase")
    p_gen.set_defaults(func=cmd_generate)

    p_ins = sub.add_parser("inspect")
    p_ins.add_argument("--input", default="-")
    p_ins.set_defaults(func=cmd_inspect)

    p_conv = sub.add_parser("convert")
    p_conv.add_argument("--format", choices=FORMAT_CHOICES, required=True)
    p_conv.add_argument("--input", default="-")
    p_conv.add_argument("--comment", default=None)
    p_conv.add_argument("--public", action="store_true", help="convert the public half of a private key")
    p_conv.set_defaults(func=cmd_convert)

    p_alg = sub.add_parser("algorithms")
    p_alg.add_argument("--json", action="store_true")
    p_alg.set_defaults(func=cmd_algorithms)

    args = p.parse_args(argv)
    if not args.verbose:
        logger = get_logger()
        logger.setLevel(max(logger.level, logging.WARNING))
    try:
        return args.func(args)
    except (KeyforgeError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
