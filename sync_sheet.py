import argparse
import csv
import io
import json
import os
from pathlib import Path

import requests
from dotenv import load_dotenv

# CONFIGURATION
load_dotenv()
SHEET_CSV_URL = os.getenv("SHEET_CSV_URL")
OUTPUT_FILE = Path(__file__).resolve().parent / "data" / "shipments.json"

# Columns to KEEP by position (A=0 ... W=22): A-I, K, O, Q, W
KEEP_INDICES = [0, 1, 2, 3, 4, 5, 6, 7, 8, 10, 14, 16, 22]


def select_columns(rows, keep_indices=KEEP_INDICES):
    """
    First row is the header row. Every kept cell is stringified and trimmed;
    rows with nothing in any kept column are dropped.
    """
    if not rows:
        return [], []

    headers = [(h or "").strip() or "Column" for h in rows[0]]
    selected_headers = [headers[i] if i < len(headers) else f"Col {i}" for i in keep_indices]

    data = []
    for row in rows[1:]:
        obj = {}
        for idx, name in zip(keep_indices, selected_headers):
            cell = row[idx] if idx < len(row) else ""
            obj[name] = str(cell if cell is not None else "").strip()
        if any(v != "" for v in obj.values()):
            data.append(obj)

    return selected_headers, data


def read_rows(source):
    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=30)
        resp.raise_for_status()
        return list(csv.reader(io.StringIO(resp.content.decode("utf-8-sig"))))

    with open(source, mode='r', encoding='utf-8-sig', newline='') as f:
        return list(csv.reader(f))


def sync_sheet(source, output_path=OUTPUT_FILE, skip_rows=0):
    try:
        rows = read_rows(source)[skip_rows:]
        if not rows:
            print("⚠️ No data found.")
            return None

        headers, data = select_columns(rows)

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, mode='w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        print(f"✅ Synced {len(data)} shipments with {len(headers)} selected columns")
        return data

    except (requests.RequestException, OSError, csv.Error) as e:
        print(f"❌ Error: {e}")
        return None


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export the tracking sheet to the portal dataset JSON.")
    parser.add_argument("source", nargs="?", default=SHEET_CSV_URL, help="CSV export URL or local CSV path")
    parser.add_argument("-o", "--output", default=str(OUTPUT_FILE))
    # The tracking sheet keeps its headers on row 2
    parser.add_argument("--skip-rows", type=int, default=1, help="Rows above the header row")
    args = parser.parse_args()

    if not args.source:
        parser.error("No source given and SHEET_CSV_URL is not set")
    sync_sheet(args.source, args.output, args.skip_rows)
