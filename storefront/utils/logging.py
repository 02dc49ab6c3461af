"""
storefront/utils/logging.py
───────────────────────────
Log setup for the storefront app: a rotating file under logs/ plus stdout.
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from flask import has_request_context, request, session


FILE_FORMAT = ('%(asctime)s | %(levelname)s | %(name)s | %(customer)s | '
               '%(remote_addr)s | %(url)s | %(message)s')
STREAM_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'


class RequestFormatter(logging.Formatter):
    """Adds url, remote_addr and customer to records logged inside a request."""

    def format(self, record):
        in_request = has_request_context()
        record.url = request.url if in_request else None
        record.remote_addr = request.remote_addr if in_request else None
        record.customer = session.get('customer_id', '-') if in_request else '-'
        return super().format(record)


def _file_handler(app):
    log_dir = os.path.join(app.root_path, '..', 'logs')
    os.makedirs(log_dir, exist_ok=True)

    handler = RotatingFileHandler(
        os.path.join(log_dir, 'app.log'),
        maxBytes=5 * 1024 * 1024,   # 5MB, 5 backups
        backupCount=5,
    )
    handler.setFormatter(RequestFormatter(FILE_FORMAT))
    handler.setLevel(logging.INFO)
    return handler


def setup_logging(app):
    """
    Attach handlers to app.logger.
    The file handler is skipped under testing, and when logs/ can't be
    created (read-only hosts) the app keeps running on stdout alone.
    """
    if not app.testing:
        try:
            app.logger.addHandler(_file_handler(app))
        except OSError as exc:
            app.logger.warning(f"File logging disabled: {exc}")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(logging.Formatter(STREAM_FORMAT))
    stream_handler.setLevel(logging.INFO)
    app.logger.addHandler(stream_handler)

    app.logger.setLevel(logging.INFO)
    app.logger.info("Storefront checkout startup")
