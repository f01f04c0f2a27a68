"""Run a full matching round over every locale in a snapshot file.

Pseudocode:
1) Configure input snapshot and output directory (edit INPUT_SNAPSHOT as needed)
2) Load matching config from COFFEE_PAIRING_* environment variables
3) Discover the locales present in the snapshot
4) Run coffee_pairing.engine.run_all_locales, one CSV publisher per locale
5) Flush each locale's proposals to OUTPUT_DIR and print a brief summary

Notes:
- The snapshot is re-read for every locale through JsonSnapshotSource, the same
  way a scheduler would pull a fresh export per run.
- A locale that fails is reported and the remaining locales still run.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Dict

# Ensure project root (parent of scripts/) is on sys.path for package imports
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from dotenv import load_dotenv
from rich.logging import RichHandler

from coffee_pairing.config import MatchingConfig
from coffee_pairing.engine import run_all_locales
from coffee_pairing.ingest import JsonSnapshotSource, load_snapshot
from coffee_pairing.publishers import CsvPublisher


# Edit these paths to point at the snapshot you want to match on
INPUT_SNAPSHOT = Path("data/candidate_snapshot.json")
OUTPUT_DIR = Path("data/proposals")


def main() -> int:
    """Entry point; returns the number of failed locales.

    Raises:
        FileNotFoundError: If the input snapshot does not exist.
    """
    load_dotenv()
    logging.basicConfig(level="INFO", format="%(message)s", handlers=[RichHandler(show_path=False)])
    if not INPUT_SNAPSHOT.exists():
        raise FileNotFoundError(f"Input snapshot not found: {INPUT_SNAPSHOT}")

    print("[1/4] Loading matching config...")
    config = MatchingConfig.from_env()
    print(f"       cooldown={config.cooldown_weeks}w, mutual_top_n={config.mutual_top_n}")

    print(f"[2/4] Discovering locales in {INPUT_SNAPSHOT}...")
    locales = load_snapshot(INPUT_SNAPSHOT).locales
    print(f"       Found {len(locales)} locales.")

    print("[3/4] Matching locales...")
    publishers: Dict[str, CsvPublisher] = {}

    def publisher_for(locale: str) -> CsvPublisher:
        publishers[locale] = CsvPublisher(OUTPUT_DIR / f"proposals_{locale.replace('/', '_')}.csv")
        return publishers[locale]

    results = run_all_locales(
        locales,
        JsonSnapshotSource(INPUT_SNAPSHOT),
        publisher_factory=publisher_for,
        config=config,
    )

    print(f"[4/4] Saving results to {OUTPUT_DIR}...")
    failed = 0
    for i, (locale, result) in enumerate(results.items(), start=1):
        if not result.ok:
            failed += 1
            print(f"   - [{i}/{len(results)}] {locale}: FAILED ({result.error})")
            continue
        path = publishers[locale].flush()
        print(f"   - [{i}/{len(results)}] {locale}: {len(result.proposals)} pairs -> {path}")

    print(f"Done. {len(results) - failed}/{len(results)} locales matched.")
    return failed


if __name__ == "__main__":
    try:
        sys.exit(1 if main() else 0)
    except Exception as exc:
        print(f"Error: {exc}")
        sys.exit(1)
