"""otpvault CLI — operator tools for secrets and codes.

Usage:
    python -m otpvault generate                  # New Base32 secret
    python -m otpvault backup                    # Single-use backup secrets
    python -m otpvault code SECRET               # Current code for a secret
    python -m otpvault verify CODE SECRET        # Verify a code (exit 1 if rejected)
    python -m otpvault encrypt TEXT              # Encrypt a secret for storage
    python -m otpvault decrypt TOKEN             # Decrypt a stored secret
    python -m otpvault uri SECRET ACCOUNT        # otpauth:// provisioning URI
"""

from __future__ import annotations

import argparse
import logging
import sys

from otpvault.auth import generator, totp
from otpvault.config import settings
from otpvault.crypto import SecretCipher
from otpvault.exceptions import OtpVaultError


def cmd_generate(args: argparse.Namespace) -> int:
    """Print a new secret."""
    print(generator.generate_secret(args.length))
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    """Print single-use backup secrets, one per line."""
    for secret in generator.generate_backup_secrets(args.count, args.length):
        print(secret)
    return 0


def cmd_code(args: argparse.Namespace) -> int:
    """Print the code for a secret at the given (or current) time."""
    step = totp.time_step(args.time)
    print(totp.generate_code(args.secret, step))
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a code and print the outcome."""
    outcome = totp.verify_code(
        args.code,
        args.secret,
        args.last_login,
        args.grace,
        at=args.time,
    )
    if outcome.accepted:
        print(f"accepted time_step={outcome.time_step}")
        return 0
    print(f"rejected reason={outcome.reason}")
    return 1


def cmd_encrypt(args: argparse.Namespace) -> int:
    """Encrypt a secret with the configured key material."""
    cipher = SecretCipher.from_settings()
    cipher.ensure_available()
    print(cipher.encrypt(args.text))
    return 0


def cmd_decrypt(args: argparse.Namespace) -> int:
    """Decrypt a stored value with the configured key material."""
    cipher = SecretCipher.from_settings()
    cipher.ensure_available()
    print(cipher.decrypt(args.token))
    return 0


def cmd_uri(args: argparse.Namespace) -> int:
    """Print the otpauth:// URI for a secret."""
    print(totp.provisioning_uri(args.secret, args.account, args.issuer or settings.twofa_issuer))
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="otpvault",
        description="otpvault — TOTP secrets, codes and at-rest encryption",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", help="Command to run")

    # generate
    p_gen = sub.add_parser("generate", help="Generate a secret")
    p_gen.add_argument("--length", type=int, default=settings.twofa_secret_length)

    # backup
    p_backup = sub.add_parser("backup", help="Generate single-use backup secrets")
    p_backup.add_argument("--count", type=int, default=settings.twofa_backup_count)
    p_backup.add_argument("--length", type=int, default=settings.twofa_backup_length)

    # code
    p_code = sub.add_parser("code", help="Show the code for a secret")
    p_code.add_argument("secret")
    p_code.add_argument("--time", type=float, help="Unix time (default: now)")

    # verify
    p_verify = sub.add_parser("verify", help="Verify a code")
    p_verify.add_argument("code")
    p_verify.add_argument("secret")
    p_verify.add_argument("--last-login", type=int, default=0)
    p_verify.add_argument("--grace", type=float, default=settings.twofa_grace_minutes)
    p_verify.add_argument("--time", type=float, help="Unix time (default: now)")

    # encrypt / decrypt
    p_enc = sub.add_parser("encrypt", help="Encrypt a secret for storage")
    p_enc.add_argument("text")
    p_dec = sub.add_parser("decrypt", help="Decrypt a stored secret")
    p_dec.add_argument("token")

    # uri
    p_uri = sub.add_parser("uri", help="Provisioning URI for QR enrollment")
    p_uri.add_argument("secret")
    p_uri.add_argument("account")
    p_uri.add_argument("--issuer", help="Issuer name (default: TWOFA_ISSUER)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    dispatch = {
        "generate": cmd_generate,
        "backup": cmd_backup,
        "code": cmd_code,
        "verify": cmd_verify,
        "encrypt": cmd_encrypt,
        "decrypt": cmd_decrypt,
        "uri": cmd_uri,
    }
    try:
        return dispatch[args.command](args)
    except (OtpVaultError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
