#!/usr/bin/env python3
"""CLI entry point: request Lalamove quotations, place orders, run the API."""

import argparse
import sys

from delivery_dispatch.config import (
    LalamoveCredentials,
    Settings,
    configure_logging,
    store_config_from_env,
)
from delivery_dispatch.delivery_orders import create_order
from delivery_dispatch.errors import DispatchError
from delivery_dispatch.lalamove_client import LalamoveClient
from delivery_dispatch.quotes import get_quote


def _print_quote(quote):
    """Print a quotation summary to stdout."""
    print(f"\n{'=' * 70}")
    print("  LALAMOVE QUOTATION")
    print(f"{'=' * 70}\n")
    print(f"  Quotation ID: {quote.quotation_id}")
    print(f"  Price:        {quote.price} {quote.currency or ''}")
    print(f"  Expires at:   {quote.expires_at}")
    print()


def _print_order(order):
    """Print a courier order summary to stdout."""
    print(f"\n{'=' * 70}")
    print("  LALAMOVE ORDER")
    print(f"{'=' * 70}\n")
    print(f"  Order ID:  {order.order_id}")
    print(f"  Status:    {order.status}")
    if order.share_link:
        print(f"  Tracking:  {order.share_link}")
    if order.driver_id:
        print(f"  Driver:    {order.driver_id}")
    print()


def _store_overrides(args) -> dict:
    """Map store CLI options onto site-setting keys."""
    sandbox = None
    if args.production:
        sandbox = "false"
    elif args.sandbox:
        sandbox = "true"
    return {
        "lalamove_market": args.market,
        "lalamove_service_type": args.service_type,
        "lalamove_sandbox": sandbox,
        "lalamove_store_name": args.store_name,
        "lalamove_store_phone": args.store_phone,
        "lalamove_store_address": args.store_address,
        "lalamove_store_latitude": args.store_lat,
        "lalamove_store_longitude": args.store_lng,
    }


def _add_store_options(parser):
    group = parser.add_argument_group("Store options")
    group.add_argument("--market", help="Market code, e.g. PH (overrides LALAMOVE_MARKET env var).")
    group.add_argument(
        "--service-type",
        help="Vehicle service type, e.g. MOTORCYCLE (overrides LALAMOVE_SERVICE_TYPE env var).",
    )
    group.add_argument("--store-name", help="Overrides LALAMOVE_STORE_NAME env var.")
    group.add_argument("--store-phone", help="Overrides LALAMOVE_STORE_PHONE env var.")
    group.add_argument("--store-address", help="Overrides LALAMOVE_STORE_ADDRESS env var.")
    group.add_argument("--store-lat", help="Overrides LALAMOVE_STORE_LATITUDE env var.")
    group.add_argument("--store-lng", help="Overrides LALAMOVE_STORE_LONGITUDE env var.")
    mode = group.add_mutually_exclusive_group()
    mode.add_argument("--sandbox", action="store_true", help="Use the sandbox host (default).")
    mode.add_argument("--production", action="store_true", help="Use the production host.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Request Lalamove deliveries for storefront orders.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO).")
    sub = parser.add_subparsers(dest="command", required=True)

    quote = sub.add_parser("quote", help="Request a delivery quotation.")
    quote.add_argument("--address", required=True, help="Delivery address.")
    quote.add_argument("--lat", required=True, help="Delivery latitude.")
    quote.add_argument("--lng", required=True, help="Delivery longitude.")
    _add_store_options(quote)

    order = sub.add_parser("order", help="Place a delivery order from a quotation.")
    order.add_argument("--quotation-id", required=True, help="Quotation ID from `quote`.")
    order.add_argument("--name", required=True, help="Recipient name.")
    order.add_argument("--phone", required=True, help="Recipient phone number.")
    order.add_argument("--remarks", default="", help="Note for the driver.")
    _add_store_options(order)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


def main(argv=None):
    parser = _build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    if args.command == "serve":
        import uvicorn

        from delivery_dispatch.api import create_app

        uvicorn.run(create_app(settings), host=args.host, port=args.port)
        return

    config = store_config_from_env(_store_overrides(args))
    if config is None:
        print(
            "Error: LALAMOVE_MARKET, LALAMOVE_SERVICE_TYPE and LALAMOVE_STORE_* must be set "
            "either as arguments or in a .env file.",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        client = LalamoveClient(LalamoveCredentials.from_env(), timeout=settings.lalamove_timeout)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    try:
        if args.command == "quote":
            _print_quote(get_quote(client, config, args.address, args.lat, args.lng))
        else:
            _print_order(
                create_order(
                    client, config, args.quotation_id, args.name, args.phone,
                    remarks=args.remarks,
                )
            )
    except DispatchError as exc:
        print(f"Error ({exc.status_code}): {exc.message}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
