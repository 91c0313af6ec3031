import logging
from pathlib import Path

import numpy as np
import pandas as pd
import requests

logger = logging.getLogger(__name__)

AUTO_MPG_COLUMNS = [
    'mpg', 'cylinders', 'displacement', 'horsepower', 'weight',
    'acceleration', 'model_year', 'origin', 'name'
]


def parse_auto_mpg(text):
    """
    Parses the UCI auto-mpg.data format.
    Each record: 8 whitespace separated numbers, a tab, then the quoted car name.
    Unknown values are written as '?'.
    Returns: DataFrame with AUTO_MPG_COLUMNS
    """
    records = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue

        numbers, sep, name = line.partition('\t')
        fields = numbers.split()
        if not sep or len(fields) != 8:
            raise ValueError(f"Malformed auto-mpg record on line {line_no}: {line!r}")

        values = [np.nan if f == '?' else float(f) for f in fields]
        records.append(values + [name.strip().strip('"')])

    df = pd.DataFrame(records, columns=AUTO_MPG_COLUMNS)
    for col in ['cylinders', 'model_year', 'origin']:
        df[col] = df[col].astype(int)
    return df


def download_auto_mpg(url, output_path="data/raw/auto_mpg.csv", timeout=30):
    """
    Downloads the Auto MPG table and overwrites the bundled CSV with it.
    Network and HTTP errors propagate to the caller.
    """
    logger.info(f"Fetching: {url}")
    headers = {'User-Agent': 'motortrend-analysis/1.0'}
    response = requests.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()

    df = parse_auto_mpg(response.text)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    logger.info(f"Saved {len(df)} records to {output_path}")

    return df
