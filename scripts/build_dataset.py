# scripts/build_dataset.py

from __future__ import annotations

import sys

from trend_ml.config import DATA_DIR
from trend_ml.dataset import build_dataset
from trend_ml.log import configure_logging
from trend_ml.series import load_price_csv


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m scripts.build_dataset PRICES_CSV")
        sys.exit(1)

    configure_logging()

    csv_path = sys.argv[1]
    print(f"[build_dataset] Building feature rows from {csv_path}...")
    prices = load_price_csv(csv_path)
    df = build_dataset(prices)

    DATA_DIR.mkdir(exist_ok=True, parents=True)
    out_path = DATA_DIR / "feature_rows.csv"
    df.to_csv(out_path)
    print(f"[build_dataset] Saved feature rows to {out_path}")
    print(f"[build_dataset] Shape: {df.shape}")
    print(f"[build_dataset] Range: {df.index[0].date()} .. {df.index[-1].date()}")


if __name__ == "__main__":
    main()
