"""
rd-autoadd command line entry point.

Usage:
  rd-autoadd [--config PATH] [--dry-run] [--verbose] [--max-per-run N]

Exit status is 1 on a startup failure (configuration, missing or rejected
credentials) or an unexpected error during the run, 0 otherwise - also when
nothing was added.
"""

import argparse
import logging
import sys
from typing import List, Optional

from rd_autoadd import __version__
from rd_autoadd.config import AutoAddConfig, load_config, mask_secret, require_real_debrid_key
from rd_autoadd.errors import ConfigError, ProviderError
from rd_autoadd.logging_setup import log_failure, log_success, resolve_level, setup_logging
from rd_autoadd.orchestrator import AutoAddRun
from rd_autoadd.realdebrid import RealDebridClient
from rd_autoadd.torrentio import TorrentioClient
from rd_autoadd.trakt import TraktClient

log = logging.getLogger("rd_autoadd")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rd-autoadd",
        description="Add the best cached release of trending Trakt titles to Real-Debrid",
    )
    parser.add_argument(
        "--config",
        help="Path to quality-preferences.json (default: $RD_AUTOADD_CONFIG or ./quality-preferences.json)",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Decide and log what would be added or upgraded without touching Real-Debrid",
    )
    parser.add_argument(
        "--max-per-run", type=int, default=None,
        help="Override limits.maxTorrentsPerRun",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Enable debug-level logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def apply_overrides(config: AutoAddConfig, args: argparse.Namespace) -> AutoAddConfig:
    if args.dry_run:
        config = config._replace(dry_run=True)
    if args.max_per_run is not None:
        if args.max_per_run < 0:
            raise ConfigError("--max-per-run cannot be negative")
        config = config._replace(limits=config.limits._replace(max_torrents_per_run=args.max_per_run))
    return config


def check_catalog_credentials(config: AutoAddConfig) -> None:
    """
    Trakt is the only catalog. Without a client id nothing can be fetched,
    which is a startup failure; a watchlist without an access token is only
    skipped when other lists are configured.
    """
    trakt = config.trakt
    if not config.enabled or not trakt.enabled:
        return
    creds = config.credentials
    if not creds.trakt_client_id:
        raise ConfigError("TRAKT_CLIENT_ID environment variable is required when Trakt is enabled")
    only_watchlist = list(trakt.lists) == ["watchlist"] and not trakt.custom_lists
    if only_watchlist and not creds.trakt_access_token:
        raise ConfigError("TRAKT_ACCESS_TOKEN is required when the watchlist is the only Trakt source")


def verify_real_debrid(client: RealDebridClient) -> None:
    log.info("Testing Real-Debrid API key...")
    try:
        user = client.get_user()
    except ProviderError as e:
        if e.status in (401, 403):
            raise ConfigError(
                "Real-Debrid API key is invalid or expired. "
                "Get a new one from: https://real-debrid.com/apitoken"
            ) from e
        raise ConfigError(f"Real-Debrid API key validation failed: {e}") from e
    log_success(log, f"✓ RD API key valid! User: {user.get('username')} (type: {user.get('type')})")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        setup_logging(level=resolve_level(args.verbose))
        log_failure(log, f"Failed to start: {e}")
        return 1

    log_path = setup_logging(config.log_dir, resolve_level(args.verbose, config.log_level))
    if log_path:
        log.debug(f"Logging to {log_path}")

    try:
        api_key = require_real_debrid_key(config)
        check_catalog_credentials(config)
        log.info(f"Using RD API Key: {mask_secret(api_key)}")
        if config.credentials.trakt_client_id:
            log.info(f"Using Trakt Client ID: {mask_secret(config.credentials.trakt_client_id, tail=0)}")

        cache = RealDebridClient(api_key)
        if config.enabled:
            verify_real_debrid(cache)
    except ConfigError as e:
        log_failure(log, f"Failed to start: {e}")
        return 1

    catalog = TraktClient(config.credentials.trakt_client_id, config.credentials.trakt_access_token)
    index = TorrentioClient(config.quality.torrentio_sort_by, config.quality.torrentio_quality_filter)

    try:
        AutoAddRun(config, catalog, index, cache).run()
    except KeyboardInterrupt:
        log.warning("Run interrupted by user")
        return 1
    except Exception as e:
        log.exception(f"Fatal error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
