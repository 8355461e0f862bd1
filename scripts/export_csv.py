#!/usr/bin/env python3
"""
Export scrape results JSON to CSV reports.

Writes three files next to each other:
- <stem>.csv           every target
- <stem>-filtered.csv  targets with a balance > $0
- <stem>-empty.csv     failed, zero, or unparseable balances

The raw total-asset text looks like "$8,869-1.29%" (value followed by the
24h change). Rows whose value is missing or unparseable are kept with empty
amount/change columns.

Usage:
    python scripts/export_csv.py
    python scripts/export_csv.py --input debank-results.json --out-dir reports/
"""

import argparse
import csv
import json
import re
import sys
from pathlib import Path


DEFAULT_INPUT = Path(__file__).parent.parent / "debank-results.json"

FIELDNAMES = ['target', 'amount_usd', 'change_percent', 'succeeded', 'selector_used', 'user_agent', 'error']

_AMOUNT_RE = re.compile(r'\$\s*([\d,]+(?:\.\d+)?)')
_CHANGE_RE = re.compile(r'^\s*([+-]?\d+(?:\.\d+)?%)')


def parse_total_asset(raw: str | None) -> tuple[str, str]:
    """
    Split raw total-asset text into (amount, change_percent).

    Examples:
        "$8,869-1.29%"   -> ("8869", "-1.29%")
        "$3,576+100.00%" -> ("3576", "+100.00%")
        "$61,988"        -> ("61988", "")
        "--11.76%"       -> ("", "")
    """
    if not raw:
        return "", ""
    match = _AMOUNT_RE.search(raw)
    if not match:
        return "", ""
    amount = match.group(1).replace(',', '')
    change = _CHANGE_RE.match(raw[match.end():])
    return amount, change.group(1) if change else ""


def has_balance(amount: str) -> bool:
    try:
        return float(amount) > 0
    except ValueError:
        return False


def build_rows(data: dict) -> list[dict]:
    """One CSV row per result. Accepts older files keyed by address/totalAsset."""
    rows = []
    for result in data.get('results', []):
        value = result.get('value', result.get('totalAsset'))
        amount, change = parse_total_asset(value)
        succeeded = result.get('succeeded', result.get('success', False))
        rows.append({
            'target': result.get('target') or result.get('address') or '',
            'amount_usd': amount,
            'change_percent': change,
            'succeeded': 'true' if succeeded else 'false',
            'selector_used': result.get('matchedSelector') or result.get('selectorUsed') or '',
            'user_agent': result.get('userAgent') or '',
            'error': result.get('error') or '',
        })
    return rows


def write_csv(rows: list[dict], output: Path):
    with open(output, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        writer.writerows(rows)


def export_reports(data: dict, out_dir: Path, stem: str = 'debank-results') -> dict[str, Path]:
    """
    Write all/filtered/empty CSVs.

    Returns:
        Mapping of report name -> path
    """
    rows = build_rows(data)
    with_balance = [r for r in rows if has_balance(r['amount_usd'])]
    empty = [r for r in rows if not has_balance(r['amount_usd'])]

    out_dir.mkdir(parents=True, exist_ok=True)
    paths = {
        'all': out_dir / f"{stem}.csv",
        'filtered': out_dir / f"{stem}-filtered.csv",
        'empty': out_dir / f"{stem}-empty.csv",
    }
    write_csv(rows, paths['all'])
    write_csv(with_balance, paths['filtered'])
    write_csv(empty, paths['empty'])

    print("CSV files created:")
    print(f"  Full: {paths['all']}")
    print(f"  Filtered (balance > $0): {paths['filtered']}")
    print(f"  Empty (null or $0): {paths['empty']}")
    print("\nStatistics:")
    print(f"  Total records: {len(rows)}")
    print(f"  With balance (> $0): {len(with_balance)}")
    print(f"  Empty/Zero balance: {len(empty)}")
    success_rate = (data.get('summary') or {}).get('successRate')
    if success_rate:
        print(f"  Success rate: {success_rate}")

    return paths


def main():
    parser = argparse.ArgumentParser(description='Export scrape results JSON to CSV')
    parser.add_argument('--input', '-i', default=str(DEFAULT_INPUT), help='Results JSON path')
    parser.add_argument('--out-dir', help='Output directory (default: next to input)')
    parser.add_argument('--stem', help='Output file stem (default: input file stem)')
    args = parser.parse_args()

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    with open(input_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    out_dir = Path(args.out_dir) if args.out_dir else input_path.parent
    export_reports(data, out_dir, stem=args.stem or input_path.stem)


if __name__ == '__main__':
    main()
