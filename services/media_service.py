# services/media_service.py

import logging

import cloudinary
from cloudinary.utils import cloudinary_url

from config import CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET

logger = logging.getLogger("services.media_service")

cloudinary.config(
    cloud_name=CLOUDINARY_CLOUD_NAME,
    api_key=CLOUDINARY_API_KEY,
    api_secret=CLOUDINARY_API_SECRET,
    secure=True,
)

# Name placement on every certificate template
OVERLAY_FONT_FAMILY = "Arial"
OVERLAY_FONT_SIZE = 80
OVERLAY_OFFSET_Y = -10


def build_certificate_url(asset_ref, overlay_text, cloud_name=None):
    """
    URL of the certificate image with the recipient name drawn on it.
    Pure URL construction; Cloudinary renders on first fetch.
    """
    url, _ = cloudinary_url(
        asset_ref,
        cloud_name=cloud_name or CLOUDINARY_CLOUD_NAME,
        secure=True,
        transformation=[
            {
                "overlay": {
                    "font_family": OVERLAY_FONT_FAMILY,
                    "font_size": OVERLAY_FONT_SIZE,
                    "text": overlay_text,
                },
                "gravity": "center",
                "y": OVERLAY_OFFSET_Y,
            }
        ],
    )
    logger.debug("Certificate URL built | asset=%s | url=%s", asset_ref, url)
    return url
