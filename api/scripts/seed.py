import argparse
import logging
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from pairing.database import SessionLocal, init_db
from pairing.services.seeding import seed_members


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed dummy members for local pairing runs")
    parser.add_argument("--n-members", type=int, default=40)
    parser.add_argument("--reset", action="store_true")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    init_db()
    with SessionLocal() as db:
        summary = seed_members(db, n_members=args.n_members, reset=args.reset, seed=args.seed)

    print("Seed completed")
    for k, v in summary.items():
        print(f"- {k}: {v}")


if __name__ == "__main__":
    main()
