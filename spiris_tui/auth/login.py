"""Out-of-band login: obtain a credential and install it for the session."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from spiris_tui.auth import OAuthClient, OAuthError
from spiris_tui.config import Config, configure_logging, load_config
from spiris_tui.db.models import Credential
from spiris_tui.db.repository import Repository
from spiris_tui.session.credentials import CredentialStore

log = logging.getLogger('spiris_tui.auth')


async def login(config: Config, code: str | None = None, open_browser: bool = True) -> Credential:
    """Exchange a code (or run the local callback flow) and save the credential."""
    oauth = OAuthClient(config.spiris, config.security.encryption_key)
    if code:
        credential = await oauth.exchange_code(code)
    else:
        credential = await oauth.authorize(open_browser=open_browser)
    repository = Repository(config.storage.path)
    await repository.connect()
    try:
        await CredentialStore(repository, oauth).save(credential)
    finally:
        await repository.close()
    return credential


def main(argv: list[str] | None = None) -> int:
    """Entry point for spiris-tui-login."""
    parser = argparse.ArgumentParser(
        prog="spiris-tui-login",
        description="Authorize spiris-tui against Spiris and store the credential.",
    )
    parser.add_argument(
        "--code", help="authorization code from the redirect URL shown in the TUI"
    )
    parser.add_argument(
        "--no-browser", action="store_true", help="print the URL instead of opening it"
    )
    parser.add_argument("--config", type=Path, help="path to config.toml")
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config.logging)
    try:
        credential = asyncio.run(login(config, args.code, not args.no_browser))
    except OAuthError as e:
        log.error(f'Login failed: {e}')
        print(f"Login failed: {e}", file=sys.stderr)
        return 1
    print(f"Logged in. Token valid until {credential.expires_at:%Y-%m-%d %H:%M}.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
