import logging
from pathlib import Path
from typing import Any

import pandas as pd

OUTPUT_DIR = Path("csv")


def save_to_csv(
  data: list[dict[str, Any]], filename: str, output_dir: Path = OUTPUT_DIR
) -> Path | None:
  """Writes a list of dictionaries to a CSV file. Returns the path written, if any."""
  if not data:
    logging.warning("No data provided to write to CSV.")
    return None

  output_path = Path(output_dir) / filename.replace("/", "")
  try:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(data)
    if "time" in df.columns:
      df.insert(1, "datetime", pd.to_datetime(df["time"], unit="s", utc=True))
    df.to_csv(output_path, index=False, encoding="utf-8")
    logging.info(f"Data successfully written to {output_path}")
    return output_path
  except OSError as e:
    logging.error(f"A file system error occurred while writing to {output_path}: {e}")
    return None
