"""Staff console: print the order list, or watch it update live."""

import argparse
import asyncio
import sys

from .config import ClientSettings
from .errors import CafeClientError
from .logger import logger
from .orders import ListState, OrderListController
from .schemas import Order
from .session import CafeSession


def format_order(order: Order) -> str:
    name = order.for_name or "Not provided"
    lines = [f"#{order.id} [{order.status}] {name} <{order.for_email}> {order.order_date} total=${order.total}"]
    for item in order.items:
        note = f" (note: {item.notes})" if item.notes else ""
        lines.append(f"    {item.quantity} x {item.item_name} @ ${item.price}{note}")
    return "\n".join(lines)


def _print_snapshot(controller: OrderListController) -> None:
    if controller.state is ListState.ERRORED:
        print(f"error: {controller.error}", file=sys.stderr)
    elif controller.state is ListState.READY:
        orders = controller.orders
        print(f"--- {len(orders)} order(s) | live={'on' if controller.connected else 'off'} ---")
        for order in orders:
            print(format_order(order))


async def show_orders(settings: ClientSettings) -> int:
    async with CafeSession(settings) as session:
        try:
            orders = await session.orders.list_orders()
        except CafeClientError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        for order in orders:
            print(format_order(order))
    return 0


async def watch_orders(settings: ClientSettings) -> int:
    async with CafeSession(settings) as session:
        controller = session.new_order_list()
        controller.subscribe(_print_snapshot)
        await controller.mount()
        try:
            # Runs until cancelled (Ctrl+C)
            await asyncio.Event().wait()
        finally:
            await controller.unmount()
    return 0


async def set_status(settings: ClientSettings, order_id: int, status: str) -> int:
    async with CafeSession(settings) as session:
        try:
            order = await session.orders.update_order_status(order_id, status)
        except CafeClientError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1
        print(format_order(order))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cafe-client", description="Café staff console")
    parser.add_argument("--api", default=None, help="API base URL (default: $CAFE_API_BASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("orders", help="Print the current orders once")
    sub.add_parser("watch", help="Print the orders every time they change")
    status = sub.add_parser("status", help="Set the status of an order")
    status.add_argument("order_id", type=int)
    status.add_argument("status", choices=["pending", "completed", "cancelled"])
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = ClientSettings.from_env()
    if args.api:
        settings = ClientSettings(
            api_base_url=args.api,
            http_timeout=settings.http_timeout,
            ws_max_retries=settings.ws_max_retries,
            ws_backoff_seconds=settings.ws_backoff_seconds,
            tax_rate=settings.tax_rate,
        )

    if args.command == "orders":
        runner = show_orders(settings)
    elif args.command == "watch":
        runner = watch_orders(settings)
    else:
        runner = set_status(settings, args.order_id, args.status)

    try:
        return asyncio.run(runner)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 130


if __name__ == "__main__":
    sys.exit(main())
