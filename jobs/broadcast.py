import argparse
import logging

from openpyxl import load_workbook

from config import TEMPLATE_LANGUAGE
from services import whatsapp_service
from utils.phone import normalize_phone

logger = logging.getLogger("jobs.broadcast")


def load_recipients(file_path):
    """
    Numbers from the first column of the first sheet. A header row, blank
    cells and anything that is not a routable number are skipped.
    """
    workbook = load_workbook(file_path, read_only=True, data_only=True)
    try:
        sheet = workbook.worksheets[0]
        recipients = []
        seen = set()
        for (cell,) in sheet.iter_rows(min_col=1, max_col=1, values_only=True):
            if cell is None:
                continue
            raw = str(int(cell)) if isinstance(cell, (int, float)) else str(cell)
            number = normalize_phone(raw)
            if not number:
                logger.debug("Skipping cell %r", cell)
                continue
            if number not in seen:
                seen.add(number)
                recipients.append(number)
        return recipients
    finally:
        workbook.close()


def run_broadcast(template_name, recipients, language=TEMPLATE_LANGUAGE, messenger=whatsapp_service):
    sent, failed = 0, 0
    for number in recipients:
        resp = messenger.send_template(number, template_name, language)
        if isinstance(resp, dict) and resp.get("error"):
            failed += 1
            logger.error("Broadcast to %s failed: %s", number, resp.get("error"))
        else:
            sent += 1
    logger.info("Broadcast %s finished | sent=%s | failed=%s", template_name, sent, failed)
    return sent, failed


def main(argv=None):
    parser = argparse.ArgumentParser(description="Send a WhatsApp template to numbers from an .xlsx file")
    parser.add_argument("file", help="recipients workbook (.xlsx)")
    parser.add_argument("template", help="approved template name")
    parser.add_argument("--language", default=TEMPLATE_LANGUAGE)
    args = parser.parse_args(argv)

    recipients = load_recipients(args.file)
    if not recipients:
        logger.error("No recipients found in %s", args.file)
        return 1

    _, failed = run_broadcast(args.template, recipients, args.language)
    return 1 if failed else 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
