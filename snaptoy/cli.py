"""
SnapToy CLI - Command-line front end for the client core.

Usage:
    snaptoy health                          Check the backend
    snaptoy info                            Show API info
    snaptoy sign-in <identity_token>        Start a session
    snaptoy sign-out                        End the session
    snaptoy whoami                          Show the signed-in user
    snaptoy credits                         Show the credit balance
    snaptoy packages                        List credit packages
    snaptoy styles                          List background styles
    snaptoy tiers                           List subscription tiers
    snaptoy transform <image> -b lego       Transform a photo
    snaptoy history                         List past transformations
    snaptoy purchase <package_id>           Buy credits
    snaptoy subscribe <tier> --receipt R    Change subscription

Configuration comes from SNAPTOY_* environment variables.
"""

import argparse
import logging
import sys

from .api.endpoints import BACKGROUND_TYPES, SUBSCRIPTION_TIERS
from .api.errors import ApiError, InsufficientCreditsError, user_message
from .api.schemas import BackgroundType, SubscriptionTier, TransformHistoryParams, TransformStatus
from .config import ClientSettings, create_api
from .state import AuthSession, AuthStatus, CreditManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SnapToy - Photo transformation client",
        prog="snaptoy",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("health", help="Check backend health")
    subparsers.add_parser("info", help="Show API info")

    sign_in_parser = subparsers.add_parser("sign-in", help="Sign in with an identity token")
    sign_in_parser.add_argument("identity_token", help="Identity token from the sign-in provider")
    sign_in_parser.add_argument("--first-name")
    sign_in_parser.add_argument("--last-name")
    sign_in_parser.add_argument("--email")

    subparsers.add_parser("sign-out", help="End the current session")
    subparsers.add_parser("whoami", help="Show the signed-in user")
    subparsers.add_parser("credits", help="Show the credit balance")
    subparsers.add_parser("packages", help="List credit packages")
    subparsers.add_parser("styles", help="List background styles")
    subparsers.add_parser("tiers", help="List subscription tiers")

    transform_parser = subparsers.add_parser("transform", help="Transform a photo")
    transform_parser.add_argument("image", help="Path to the photo")
    transform_parser.add_argument(
        "--background", "-b",
        choices=[b.value for b in BackgroundType],
        default=BackgroundType.CARTOON.value,
    )
    transform_parser.add_argument("--prompt", "-p", help="Custom prompt (max 200 characters)")

    history_parser = subparsers.add_parser("history", help="List past transformations")
    history_parser.add_argument("--limit", type=int, default=20)
    history_parser.add_argument("--offset", type=int, default=0)
    history_parser.add_argument("--status", choices=[s.value for s in TransformStatus])

    purchase_parser = subparsers.add_parser("purchase", help="Buy a credit package")
    purchase_parser.add_argument("package_id", help="Package to buy")
    purchase_parser.add_argument("--receipt", help="Store receipt data")

    subscribe_parser = subparsers.add_parser("subscribe", help="Change subscription tier")
    subscribe_parser.add_argument(
        "tier", choices=[t.value for t in SubscriptionTier if t != SubscriptionTier.NONE]
    )
    subscribe_parser.add_argument("--receipt", required=True, help="Store receipt data")

    return parser


def main(argv=None, api=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    if api is None:
        try:
            api = create_api(ClientSettings.from_env())
        except ValueError as e:
            print(f"Error: {e}")
            return 2

    try:
        return handler(api, args) or 0
    except InsufficientCreditsError as e:
        print(f"Error: {user_message(e)}")
        print(f"  Required: {e.required}, available: {e.available}")
        print("  Run 'snaptoy packages' to see what you can buy.")
        return 1
    except ApiError as e:
        print(f"Error: {user_message(e)}")
        return 1


def cmd_health(api, args):
    health = api.health_check()
    print(f"Status: {health.status}")
    if health.uptime is not None:
        print(f"Uptime: {health.uptime:.0f}s")


def cmd_info(api, args):
    info = api.get_api_info()
    print(f"{info.name} {info.version}")
    if info.description:
        print(info.description)
    if info.documentation:
        print(f"Docs: {info.documentation}")


def cmd_sign_in(api, args):
    auth = AuthSession(api)
    request = {"identity_token": args.identity_token}
    profile = {
        "first_name": args.first_name,
        "last_name": args.last_name,
        "email": args.email,
    }
    if any(profile.values()):
        request["user"] = profile

    if not auth.sign_in(request):
        print(f"Sign-in failed: {auth.state.error or 'a valid identity token is required'}")
        return 1
    print(f"Signed in as {auth.state.user.display_name}")
    print(f"Credits: {auth.state.user.photo_credits}")


def cmd_sign_out(api, args):
    AuthSession(api).sign_out()
    print("Signed out")


def cmd_whoami(api, args):
    auth = AuthSession(api)
    state = auth.initialize()
    if state.status != AuthStatus.SIGNED_IN:
        print("Not signed in")
        return 1
    user = state.user
    print(f"User: {user.display_name} ({user.public_id})")
    print(f"Tier: {user.subscription_tier.value}")
    print(f"Credits: {user.photo_credits}")


def cmd_credits(api, args):
    credits = CreditManager(api)
    state = credits.refresh_balance()
    if state.error:
        print(f"Error: {state.error}")
        return 1
    print(f"Credits: {state.photo_credits}")
    print(f"Tier: {state.subscription_tier.value}")


def cmd_packages(api, args):
    credits = CreditManager(api)
    state = credits.refresh_packages()
    if state.error:
        print(f"Error: {state.error}")
        return 1
    for package in state.available_packages:
        print(f"  [{package.package_id}] {package.name}: {package.credits} credits for {package.price}")


def cmd_styles(api, args):
    for key, style in BACKGROUND_TYPES.items():
        print(f"  {key:<8} {style['name']}: {style['description']}")


def cmd_tiers(api, args):
    for key, tier in SUBSCRIPTION_TIERS.items():
        if tier["credits"]:
            print(f"  {key:<8} {tier['name']}: {tier['credits']} credits per {tier['duration']} for ${tier['price']:.2f}")
        else:
            print(f"  {key:<8} {tier['name']}: no subscription")


def cmd_transform(api, args):
    credits = CreditManager(api)
    state = credits.refresh_balance()
    if state.error:
        print(f"Error: {state.error}")
        return 1

    print(f"Transforming {args.image} ({args.background})...")
    result = credits.transform_photo(args.image, args.background, args.prompt)
    print(f"Transformation {result.public_id}: {result.status.value}")
    if result.result_image_url:
        print(f"Result: {result.result_image_url}")
    if result.error_message:
        print(f"Error: {result.error_message}")
    print(f"Credits left: {credits.state.photo_credits}")


def cmd_history(api, args):
    params = TransformHistoryParams(limit=args.limit, offset=args.offset, status=args.status)
    page = api.get_transformation_history(params)
    if not page.items:
        print("No transformations yet")
        return
    for item in page.items:
        created = item.created_at.isoformat() if item.created_at else "-"
        print(f"  {item.public_id}  {item.background_type.value:<8} {item.status.value:<10} {created}")
    if page.meta and page.meta.has_next:
        print(f"  ... more (use --offset {args.offset + args.limit})")


def cmd_purchase(api, args):
    credits = CreditManager(api)
    if not credits.purchase_credits(args.package_id, args.receipt):
        print(f"Purchase failed: {credits.state.error}")
        return 1
    purchase = credits.state.purchase_history[0]
    print(f"Purchase {purchase.public_id}: +{purchase.credits_added} credits")
    print(f"Credits: {credits.state.photo_credits}")


def cmd_subscribe(api, args):
    credits = CreditManager(api)
    if not credits.upgrade_subscription(args.tier, args.receipt):
        print(f"Subscription update failed: {credits.state.error}")
        return 1
    print(f"Tier: {credits.state.subscription_tier.value}")
    print(f"Credits: {credits.state.photo_credits}")


COMMANDS = {
    "health": cmd_health,
    "info": cmd_info,
    "sign-in": cmd_sign_in,
    "sign-out": cmd_sign_out,
    "whoami": cmd_whoami,
    "credits": cmd_credits,
    "packages": cmd_packages,
    "styles": cmd_styles,
    "tiers": cmd_tiers,
    "transform": cmd_transform,
    "history": cmd_history,
    "purchase": cmd_purchase,
    "subscribe": cmd_subscribe,
}


if __name__ == "__main__":
    sys.exit(main())
