import argparse
import asyncio
import sys

from grepud_client.config import LOG_LEVEL, configure_logging
from grepud_client.errors import Result
from grepud_client.session import ClientSession


def print_orders(orders) -> None:
    if not orders:
        print("No orders yet.")
        return
    for order in orders:
        print(f"{order.id}\t{order.item}\tRp {order.price:,}\t{order.status.value.upper()}")


def report(result: Result) -> int:
    if result.ok:
        return 0
    print(f"error: {result.failure.message}", file=sys.stderr)
    return 1


async def run(args: argparse.Namespace) -> int:
    async with ClientSession() as session:
        if args.command == "register":
            result = await session.auth.register(args.username, args.email, args.password)
            if result.ok:
                print(result.value)
                print(f"Next: verify --email {args.email} --code <otp>")
        elif args.command == "verify":
            result = await session.auth.verify(args.code, email=args.email)
            if result.ok:
                print(result.value)
        elif args.command == "login":
            result = await session.auth.login(args.email, args.password)
            if result.ok:
                print("Logged in.")
        elif args.command == "logout":
            session.logout()
            print("Logged out.")
            return 0
        elif args.command == "orders":
            result = await session.orders.list_orders()
            if result.ok:
                print_orders(result.value)
        elif args.command == "create":
            result = await session.orders.create_order(args.item, args.price)
            if result.ok:
                print_orders(result.value)
        elif args.command == "pay":
            result = await session.orders.pay_order(args.order_id, args.amount)
            if result.ok:
                print("Payment succeeded.")
                print_orders(result.value)
        else:
            raise ValueError(f"Unknown command {args.command}")
        return report(result)


def main() -> None:
    p = argparse.ArgumentParser(prog="grepud_client", description="Log in and manage orders from the command line.")
    p.add_argument("--log-level", default=LOG_LEVEL)
    sub = p.add_subparsers(dest="command", required=True)

    reg = sub.add_parser("register")
    reg.add_argument("--username", required=True)
    reg.add_argument("--email", required=True)
    reg.add_argument("--password", required=True)

    ver = sub.add_parser("verify")
    ver.add_argument("--email", required=True)
    ver.add_argument("--code", required=True, help="6 digit OTP from the email")

    log = sub.add_parser("login")
    log.add_argument("--email", required=True)
    log.add_argument("--password", required=True)

    sub.add_parser("logout")
    sub.add_parser("orders")

    create = sub.add_parser("create")
    create.add_argument("--item", default="Nasi Goreng")
    create.add_argument("--price", type=int, default=25000)

    pay = sub.add_parser("pay")
    pay.add_argument("--order-id", required=True)
    pay.add_argument("--amount", type=int, required=True, help="Must equal the order price")

    args = p.parse_args()
    configure_logging(args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
