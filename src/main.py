import sys
import logging

from pydantic import ValidationError

from config import get_settings
from csv_io import RecordParseError, write_accounts
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def main():
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    configure_logging(settings.log_level)

    if len(sys.argv) != 2:
        print("Usage: payments-engine <transactions.csv>", file=sys.stderr)
        sys.exit(1)

    filepath = sys.argv[1]
    try:
        if settings.accounts_snapshot:
            engine = PaymentsEngine.from_snapshot(settings.accounts_snapshot)
        else:
            engine = PaymentsEngine()
        engine.process_file(filepath)
    except (OSError, RecordParseError) as e:
        logger.error(f"Failed to process {filepath}: {e}")
        sys.exit(1)

    write_accounts(engine.ledger.snapshot(), sys.stdout)


if __name__ == "__main__":
    main()
