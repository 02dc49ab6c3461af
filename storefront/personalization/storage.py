"""
storefront/personalization/storage.py
-------------------------------------
Saves customer artwork and hands back an opaque reference (URL).

Files land in UPLOAD_FOLDER/<product_id>/<placement>-<random>.<ext>.
The calculator never looks inside the file; it only stores the URL on
the placement selection.
"""
import os
import uuid

from flask import current_app, url_for
from werkzeug.utils import secure_filename


def save_artwork(file_storage, product_id, placement: str) -> str:
    """Persist an uploaded file and return its public URL."""
    original = secure_filename(file_storage.filename or '')
    ext      = original.rsplit('.', 1)[1].lower() if '.' in original else 'bin'
    prefix   = secure_filename(placement).lower() or 'artwork'
    name     = f'{prefix}-{uuid.uuid4().hex}.{ext}'

    folder = os.path.join(current_app.config['UPLOAD_FOLDER'], str(product_id))
    os.makedirs(folder, exist_ok=True)
    file_storage.save(os.path.join(folder, name))

    current_app.logger.info(f"Artwork saved for product {product_id} ({placement}): {name}")
    return url_for('personalization.artwork', product_id=product_id, filename=name)


def file_size(file_storage) -> int:
    """Byte size of an uploaded stream, leaving it rewound."""
    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size
