"""
Session Client Entry Point

Allows inspecting the stored session via `python -m session_client`.
Configures logging to stderr (stdout carries the command output).

Commands:
    status  Evaluate the stored credentials and print the verdict
    logout  Revoke the session server-side and delete the stored credentials
"""

import argparse
import asyncio
import logging
import sys

from .core.config import SessionConfig
from .core.session_gate import SessionGate, SessionVerdict
from .events.session_events import SessionEventBus
from .persistence.credential_store import FileCredentialStore, StoreUnavailableError
from .security.auth_client import AuthClient
from .transport.request_pipeline import RequestPipeline


def setup_logging(verbose: bool = False):
    """Configure logging to stderr"""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )


async def run(command: str, config: SessionConfig) -> int:
    """Run a command, return exit code"""
    store = FileCredentialStore(str(config.credential_path))
    bus = SessionEventBus()
    gate = SessionGate(store, bus)

    if command == "logout":
        async with RequestPipeline(store, config, session_events=bus) as pipeline:
            await AuthClient(pipeline, store, bus).logout()

    verdict = await gate.evaluate()
    print(verdict.value)
    return 0 if verdict is SessionVerdict.AUTHENTICATED else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="session_client")
    parser.add_argument("command", choices=["status", "logout"])
    parser.add_argument("--credential-file", help="Credential JSON file")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger("main")

    overrides = {}
    if args.credential_file:
        overrides["credential_file"] = args.credential_file

    try:
        config = SessionConfig.from_env(**overrides)
        return asyncio.run(run(args.command, config))
    except StoreUnavailableError as e:
        logger.error(f"Credential store unavailable: {e}")
        return 2
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
