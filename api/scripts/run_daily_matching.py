import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pairing.database import init_db
from pairing.main import repo_run_daily_matching


def main() -> None:
    parser = argparse.ArgumentParser(description="Create today's pairings and update the waitlist")
    parser.add_argument("--date", type=date.fromisoformat, default=None, help="Pairing date (YYYY-MM-DD); defaults to today in the pairing timezone")
    parser.add_argument("--seed", type=int, default=None, help="Shuffle seed; defaults to one derived from the date")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    init_db()
    result = repo_run_daily_matching(args.date, seed=args.seed)
    print(json.dumps(result, indent=2, default=str))


if __name__ == "__main__":
    main()
