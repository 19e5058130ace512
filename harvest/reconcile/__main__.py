"""
CLI entry point for order reconciliation.

Usage:
    python -m harvest.reconcile convert master.xlsx --company 연두
    python -m harvest.reconcile convert master.xlsx --company 연두 --fake-orders fake.txt --output 발주서.xlsx
    python -m harvest.reconcile merge master.xlsx invoices.xlsx --company 연두 --output-dir out/
"""

import argparse
import logging
import sys
from pathlib import Path

from .catalog import load_default_pricing, load_pricing_file
from .converter import convert_company
from .errors import ReconcileError
from .invoices import build_invoice_map, merge_invoices
from .matcher import ProductMatcher
from .report import format_conversion, format_merge
from .sheet_writer import create_invoice_workbook, create_order_workbook
from .sheets import parse_fake_order_numbers, read_grid_file


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reconcile",
        description="Order reconciliation - vendor purchase orders and invoice merges",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log per-row detail")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Build one vendor's purchase order from the master sheet")
    convert.add_argument("master", metavar="MASTER", help="Master order sheet (XLSX or CSV)")
    convert.add_argument("--company", required=True, help="Vendor name as it appears in the catalog")
    convert.add_argument("--fake-orders", metavar="FILE", help="Text file of order numbers to exclude")
    convert.add_argument("--catalog", metavar="JSON", help="Catalog backup (default: bundled catalog)")
    convert.add_argument("--output", metavar="XLSX", help="Write the purchase order here")

    merge = sub.add_parser("merge", help="Stamp carrier tracking numbers onto order rows")
    merge.add_argument("orders", metavar="ORDERS", help="Order sheet (XLSX or CSV)")
    merge.add_argument("invoices", metavar="INVOICES", help="Carrier invoice sheet (XLSX or CSV)")
    merge.add_argument("--company", required=True, help="Vendor name")
    merge.add_argument("--output-dir", metavar="DIR", help="Write both invoice workbooks here")
    merge.add_argument(
        "--group-check",
        action="store_true",
        help="Re-filter order rows by the vendor's group keywords",
    )
    return parser


def _run_convert(args) -> None:
    config = load_pricing_file(args.catalog) if args.catalog else load_default_pricing()
    if args.company not in config:
        print(f"Error: Unknown company: {args.company}", file=sys.stderr)
        sys.exit(1)

    grid = read_grid_file(args.master)
    fake_orders = set()
    if args.fake_orders:
        fake_orders = parse_fake_order_numbers(Path(args.fake_orders).read_text(encoding="utf-8"))

    result = convert_company(config, grid, args.company, fake_orders=fake_orders, matcher=ProductMatcher(config))
    print(format_conversion(result, args.company))

    if args.output and result is not None and not result.is_empty:
        output_path = Path(args.output)
        output_path.write_bytes(create_order_workbook(result).getvalue())
        print(f"Purchase order written to: {output_path}")


def _run_merge(args) -> None:
    order_grid = read_grid_file(args.orders)
    invoice_map = build_invoice_map(read_grid_file(args.invoices), args.company)
    result = merge_invoices(order_grid, invoice_map, args.company, skip_group_check=not args.group_check)
    print(format_merge(result))

    if args.output_dir:
        out_dir = Path(args.output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / result.mgmt_file_name).write_bytes(create_invoice_workbook(result, "mgmt").getvalue())
        (out_dir / result.upload_file_name).write_bytes(create_invoice_workbook(result, "upload").getvalue())
        print(f"Invoice workbooks written to: {out_dir}")


def main():
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "convert":
            _run_convert(args)
        else:
            _run_merge(args)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except ReconcileError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
