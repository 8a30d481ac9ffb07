"""
Order stats diagnostic script.
Prints product and city tables for a date range using the dashboard pipeline.
"""

import os
import sys
import argparse
from datetime import date, timedelta
from dotenv import load_dotenv

load_dotenv()

from api_client import ApiError, DashboardApiClient
from config import Settings, configure_logging
from conversion import ConversionRateStore
from data_loader import load_orders
from filters import OrderFilters
from metrics import aggregate, compute_totals, calculate_kpis, filter_orders
from sheet_client import GoogleSheetClient, fetch_published_sheet, get_google_creds
from status_config import StatusConfigStore
from storage import JsonFileStorage


def parse_args(argv=None):
    today = date.today()
    parser = argparse.ArgumentParser(description="Print product and city stats for a date range")
    parser.add_argument("--start", type=date.fromisoformat, default=today - timedelta(days=6),
                        help="First day (YYYY-MM-DD), default 7 days ago")
    parser.add_argument("--end", type=date.fromisoformat, default=today,
                        help="Last day (YYYY-MM-DD), default today")
    parser.add_argument("--all-time", action="store_true", help="Ignore the date range")
    parser.add_argument("--limit", type=int, default=20, help="Rows per table")
    return parser.parse_args(argv)


def build_fetch(settings: Settings):
    if settings.data_source == "backend":
        client = DashboardApiClient(base_url=settings.api_url)
        client.login(os.environ.get("DASHBOARD_EMAIL", ""), os.environ.get("DASHBOARD_PASSWORD", ""))
        return client.fetch_my_sheet_data
    if settings.sheet_url:
        return lambda: fetch_published_sheet(settings.sheet_url)
    creds = get_google_creds(settings.service_account_file, settings.client_secrets_file, settings.token_file)
    sheet = GoogleSheetClient(settings.sheet_id, creds=creds)
    return lambda: sheet.fetch_rows(settings.sheet_range)


def print_table(title, rows, totals, limit):
    print(f"\n--- {title} ---")
    print(f"\n{'Name':<30} {'Leads':>7} {'Conf':>6} {'Deliv':>6} {'Ret':>5} {'Deliv %':>8} {'Qty':>6} {'Amount':>12} {'AOV':>10}")
    print("-" * 96)
    for r in rows[:limit]:
        print(f"{r.name[:30]:<30} {r.total_leads:>7} {r.confirmation:>6} {r.delivery:>6} {r.returned:>5} "
              f"{r.delivery_percent:>7.2f}% {r.total_quantity:>6} {r.total_amount:>12,.2f} {r.selling_price:>10,.2f}")
    if len(rows) > limit:
        print(f"... {len(rows) - limit} more")
    print("-" * 96)
    print(f"{'TOTAL':<30} {totals.total_leads:>7} {totals.confirmation:>6} {totals.delivery:>6} {totals.returned:>5} "
          f"{totals.delivery_percent:>7.2f}% {totals.total_quantity:>6} {totals.total_amount:>12,.2f} {totals.selling_price:>10,.2f}")


def main(argv=None):
    args = parse_args(argv)
    settings = Settings.from_env(load_env_file=False)
    configure_logging(settings.log_level)

    storage = JsonFileStorage(settings.state_file)
    status_config = StatusConfigStore(storage).config
    filters = OrderFilters() if args.all_time else OrderFilters(time_range="Custom", start_date=args.start, end_date=args.end)

    print("=" * 60)
    if args.all_time:
        print("ORDER STATS: all time")
    else:
        print(f"ORDER STATS: {args.start.strftime('%b %d')} - {args.end.strftime('%b %d, %Y')}")
    print("=" * 60)

    try:
        fetch = build_fetch(settings)
    except (ApiError, ValueError) as e:
        print(f"Failed to connect: {getattr(e, 'message', e)}")
        return 1

    result = load_orders(fetch, ConversionRateStore(storage))
    if result.error:
        print(f"Failed to load orders: {result.error}")
        return 1

    print(f"\nOrders loaded: {len(result.orders)}")

    kpis = calculate_kpis(filter_orders(result.orders, filters), status_config)
    print(f"Orders in range:   {kpis['total_orders']}")
    print(f"Delivered:         {kpis['delivered_orders']} ({kpis['delivery_rate']:.1f}%)")
    print(f"Revenue:           {kpis['total_revenue']:,.2f}")
    print(f"Avg order value:   {kpis['average_order_value']:,.2f}")

    for title, group_key in (("PRODUCTS", "product"), ("CITIES", "city")):
        rows = aggregate(result.orders, filters, status_config, group_key)
        print_table(title, rows, compute_totals(rows), args.limit)

    return 0


if __name__ == "__main__":
    sys.exit(main())
