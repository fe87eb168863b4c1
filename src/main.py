import os
import sys
import logging

from models import InvariantViolation
from payments_engine import PaymentsEngine
from report import write_accounts_csv

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_INPUT_ERROR = 2
EXIT_INVARIANT_VIOLATION = 3

LOG_LEVEL_ENV = "PAYMENTS_LOG_LEVEL"


def configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("Usage: payments-engine <input.csv>", file=sys.stderr)
        return EXIT_USAGE

    configure_logging()

    engine = PaymentsEngine()
    try:
        engine.process_file(args[0])
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Cannot read {args[0]}: {e}")
        return EXIT_INPUT_ERROR
    except InvariantViolation as e:
        logger.critical(f"Ledger invariant violated, aborting: {e}")
        return EXIT_INVARIANT_VIOLATION

    write_accounts_csv(engine.ledger.snapshot(), sys.stdout)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
