import io
import logging

import qrcode
import requests

from core.errors import ExternalServiceError
from utils.config import HTTP_TIMEOUT, QUICKCHART_QR_URL

logger = logging.getLogger(__name__)


class QuickChartScanCodeService:
    """QR PNG rendered by quickchart.io (network call, may fail)."""

    def __init__(self, url=QUICKCHART_QR_URL, timeout=HTTP_TIMEOUT, session=None):
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def render(self, text, size):
        try:
            res = self.session.get(self.url, params={"text": text, "size": size}, timeout=self.timeout)
        except requests.RequestException as e:
            raise ExternalServiceError(f"QR service unreachable: {e}")
        if res.status_code != 200:
            raise ExternalServiceError(f"QR service returned HTTP {res.status_code}")
        return res.content


class LocalScanCodeService:
    """Offline QR rendering with the qrcode library."""

    def render(self, text, size):
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=4,
        )
        qr.add_data(text)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white").get_image()
        img = img.resize((size, size))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()


def build_scan_code_service(provider):
    if provider == "local":
        return LocalScanCodeService()
    if provider == "quickchart":
        return QuickChartScanCodeService()
    raise ValueError(f"unknown QR provider '{provider}'")
