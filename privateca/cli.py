"""
privateca command line.

    privateca create --hostname www.example.com --subject-alt-name api.example.com
    privateca verify service.pem --ca-file ca.crt

Option defaults come from PRIVATECA_* environment variables (a .env
file is honoured) and are overridden by command-line flags.
"""
import argparse
import os
import sys
from typing import List, Optional

from pydantic import ValidationError

from .authority import create_private_ca
from .common.errors import OutputError, PrivateCAError
from .common.options import HashAlgorithm, Options, Verbosity
from .common.utils import log_debug
from .crypto.pki import validate_certificate_from_pem
from .storage.pem import check_writable, write_certificate, write_csr, write_private_key

DEBUG_CSR_PATH = "./debug-ca.csr"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="privateca",
        description="Create a private CA scoped to a service's DNS names."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="create a self-signed private CA")
    create.add_argument("--hostname", help="primary DNS name of the service")
    create.add_argument("--subject-alt-name", dest="subject_alt_names",
                        action="append", metavar="NAME",
                        help="additional DNS name (repeatable)")
    create.add_argument("--country", help="two-letter country code")
    create.add_argument("--state", help="state or province")
    create.add_argument("--locality", help="city or locality")
    create.add_argument("--organization", dest="org", help="organization name")
    create.add_argument("--organizational-unit", dest="org_unit",
                        help="organizational unit")
    create.add_argument("--lifetime", type=int, help="validity in days")
    create.add_argument("--hash-alg", dest="hash_fn",
                        choices=[h.value for h in HashAlgorithm],
                        help="signature digest")
    level = create.add_mutually_exclusive_group()
    level.add_argument("-q", "--quiet", dest="verbosity", action="store_const",
                       const=Verbosity.QUIET, help="print nothing on success")
    level.add_argument("-v", "--verbose", dest="verbosity", action="store_const",
                       const=Verbosity.VERBOSE, help="print progress messages")
    level.add_argument("-d", "--debug", dest="verbosity", action="store_const",
                       const=Verbosity.DEBUG,
                       help=f"print debug messages and write {DEBUG_CSR_PATH}")
    create.add_argument("--ca-file", default="./ca.crt",
                        help="output path of the CA certificate")
    create.add_argument("--ca-key-file", default="./ca-key.pem",
                        help="output path of the CA private key")
    create.add_argument("--ca-key-password",
                        help="encrypt the CA private key with this password")
    create.add_argument("--force", action="store_true",
                        help="overwrite existing output files")

    verify = sub.add_parser("verify", help="check a certificate against a private CA")
    verify.add_argument("cert", help="PEM certificate to check")
    verify.add_argument("--ca-file", default="./ca.crt", help="CA certificate")
    verify.add_argument("--expected-cn", help="required Common Name")

    return parser


def _debug_sink(verbosity: Verbosity):
    def sink(csr_pem: bytes) -> None:
        log_debug(verbosity, f"Writing CA CSR to {DEBUG_CSR_PATH}")
        write_csr(csr_pem, DEBUG_CSR_PATH)
    return sink


def run_create(args: argparse.Namespace) -> int:
    try:
        options = Options.from_env(
            hostname=args.hostname,
            subject_alt_names=args.subject_alt_names,
            country=args.country,
            state=args.state,
            locality=args.locality,
            org=args.org,
            org_unit=args.org_unit,
            lifetime=args.lifetime,
            hash_fn=args.hash_fn,
            verbosity=args.verbosity,
        )
    except ValidationError as e:
        print(f"Invalid options: {e}", file=sys.stderr)
        return 2

    password = args.ca_key_password.encode('utf-8') if args.ca_key_password else None
    try:
        check_writable([args.ca_file, args.ca_key_file], overwrite=args.force)
        ca = create_private_ca(options, debug_sink=_debug_sink(options.verbosity))
        write_certificate(ca.cert, args.ca_file, overwrite=args.force)
        try:
            write_private_key(ca.key, args.ca_key_file, password=password,
                              overwrite=args.force)
        except OutputError:
            # never leave a certificate behind without its key
            os.remove(args.ca_file)
            raise
    except PrivateCAError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if options.verbosity >= Verbosity.NORMAL:
        print(f"✓ CA created: {args.ca_file} and {args.ca_key_file}")
    return 0


def run_verify(args: argparse.Namespace) -> int:
    try:
        with open(args.cert, 'r', encoding='utf-8') as f:
            cert_pem = f.read()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    is_valid, message = validate_certificate_from_pem(cert_pem, args.ca_file, args.expected_cn)
    if is_valid:
        print(f"✓ {message}")
        return 0
    print(f"✗ {message}", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "create":
        return run_create(args)
    return run_verify(args)


if __name__ == "__main__":
    sys.exit(main())
