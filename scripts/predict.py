from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from floorprice.errors import InvalidInputError  # noqa: E402
from floorprice.estimator import FloorPriceEstimator  # noqa: E402
from floorprice.features import FLOAT_FEATURES, STRING_FEATURES  # noqa: E402
from floorprice.utils import get_logger, load_config, set_log_level  # noqa: E402

LOGGER = get_logger(__name__)

REQUEST_COLUMNS = [
    "inventory_id",
    "request_type",
    "ex_floor_price",
    "state_code",
    "country_code",
    "city_code",
    "device_os",
    "device_os_version",
    "hour_of_day",
]


def read_requests(path: str | Path) -> pd.DataFrame:
    path = Path(path)
    if path.suffix.lower() == ".parquet":
        df = pd.read_parquet(path)
    else:
        # Codes such as "01" or "10" must stay text.
        df = pd.read_csv(path, dtype={col: str for col in STRING_FEATURES}, keep_default_na=False)
    missing = [col for col in REQUEST_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Input {path} is missing columns: {missing}")
    for col in FLOAT_FEATURES:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def score_frame(estimator: FloorPriceEstimator, df: pd.DataFrame) -> pd.DataFrame:
    estimates: list[Optional[float]] = []
    invalid = 0
    for row in df[REQUEST_COLUMNS].itertuples(index=False):
        values = row._asdict()
        values["ex_floor_price"] = None if pd.isna(values["ex_floor_price"]) else float(values["ex_floor_price"])
        try:
            estimates.append(estimator.predict(**values))
        except InvalidInputError as exc:
            invalid += 1
            LOGGER.debug("Skipping row: %s", exc)
            estimates.append(None)
    if invalid:
        LOGGER.warning("%d of %d rows had invalid input and were not scored", invalid, df.shape[0])
    payload = df.copy()
    payload["floor_price"] = pd.Series(estimates, index=df.index, dtype="float64")
    return payload


def predict_batch(config: dict, input_path: str, output_path: Optional[str] = None) -> Path:
    """Score every request row in ``input_path`` and write them with a ``floor_price`` column."""
    df = read_requests(input_path)
    with FloorPriceEstimator.from_config(config) as estimator:
        payload = score_frame(estimator, df)
    output = Path(output_path) if output_path else Path(input_path).with_name(Path(input_path).stem + "_floor_prices.csv")
    output.parent.mkdir(parents=True, exist_ok=True)
    payload.to_csv(output, index=False)
    scored = int(payload["floor_price"].notna().sum())
    LOGGER.info("Estimated %d of %d rows. Output saved to %s", scored, payload.shape[0], output)
    return output


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Batch floor price estimation")
    parser.add_argument("--config", type=str, default="configs/default.yaml")
    parser.add_argument("--input", type=str, required=True, help="Input CSV/Parquet file of auction requests")
    parser.add_argument("--output", type=str, help="Output CSV file (default: <input>_floor_prices.csv)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    config = load_config(args.config)
    set_log_level(config.get("logging", {}).get("level", "INFO"))
    predict_batch(config, args.input, args.output)


if __name__ == "__main__":
    main()
