import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pairing.database import init_db
from pairing.main import repo_run_recovery


def main() -> int:
    parser = argparse.ArgumentParser(description="Artificially complete one-sided pairings past their deadline")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be completed without writing")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    init_db()
    report = repo_run_recovery(dry_run=args.dry_run)
    print(json.dumps(report, indent=2, default=str))
    return 1 if report["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
