import io
import logging
import time
from dataclasses import dataclass, replace
from typing import Optional

import requests
from google.auth.transport.requests import Request
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from core.errors import RenderFailure
from utils.config import EXPORT_OPTIONS, HTTP_TIMEOUT, SHEETS_EXPORT_URL

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
GOOGLE_SHEET_MIME = "application/vnd.google-apps.spreadsheet"


@dataclass(frozen=True)
class ExportOptions:
    page_size: str = EXPORT_OPTIONS["size"]
    landscape: bool = EXPORT_OPTIONS["landscape"]
    scale_mode: int = EXPORT_OPTIONS["scale_mode"]
    margin: float = EXPORT_OPTIONS["margin"]
    target_page_id: Optional[str] = None

    def for_page(self, page_id):
        return replace(self, target_page_id=page_id)

    def query_params(self, gid=None):
        params = {
            "format": "pdf",
            "size": self.page_size,
            "portrait": "false" if self.landscape else "true",
            "scale": self.scale_mode,
            "gridlines": "false",
            "top_margin": f"{self.margin:.2f}",
            "bottom_margin": f"{self.margin:.2f}",
            "left_margin": f"{self.margin:.2f}",
            "right_margin": f"{self.margin:.2f}",
        }
        if gid is not None:
            params["gid"] = gid
        return params


class DriveSheetsRenderer:
    """
    PDF export through Google Sheets.

    The assembled workbook is uploaded to Drive as a temporary Google Sheet,
    exported with the Sheets PDF endpoint, then trashed on every exit path.
    Without target_page_id all pages are exported in order.
    """

    def __init__(self, credentials, gc, temp_folder_id=None, drive_service=None, session=None,
                 timeout=HTTP_TIMEOUT):
        self.credentials = credentials
        self.gc = gc
        self.temp_folder_id = temp_folder_id
        self.drive = drive_service or build("drive", "v3", credentials=credentials, cache_discovery=False)
        self.session = session or requests.Session()
        self.timeout = timeout

    def _token(self):
        if not self.credentials.valid:
            self.credentials.refresh(Request())
        return self.credentials.token

    def _upload(self, document):
        body = {
            "name": f"Temp_{document.file_name}_{int(time.time() * 1000)}",
            "mimeType": GOOGLE_SHEET_MIME,
        }
        if self.temp_folder_id:
            body["parents"] = [self.temp_folder_id]
        media = MediaIoBaseUpload(io.BytesIO(document.to_bytes()), mimetype=XLSX_MIME, resumable=False)
        created = self.drive.files().create(
            body=body,
            media_body=media,
            fields="id",
            supportsAllDrives=True,
        ).execute()
        return created["id"]

    def _trash(self, file_id):
        try:
            self.drive.files().update(fileId=file_id, body={"trashed": True}, supportsAllDrives=True).execute()
        except Exception as e:
            logger.warning(f"Could not trash temp file {file_id}: {e}")

    def export(self, document, options):
        file_id = None
        try:
            file_id = self._upload(document)
            gid = None
            if options.target_page_id:
                gid = self.gc.open_by_key(file_id).worksheet(options.target_page_id).id

            res = self.session.get(
                SHEETS_EXPORT_URL.format(file_id=file_id),
                params=options.query_params(gid),
                headers={"Authorization": f"Bearer {self._token()}"},
                timeout=self.timeout,
            )
            if res.status_code != 200:
                logger.error(f"PDF export failed: HTTP {res.status_code} {res.text[:200]}")
                raise RenderFailure(f"PDF export failed (HTTP {res.status_code})")
            return res.content
        except RenderFailure:
            raise
        except Exception as e:
            raise RenderFailure(f"PDF export failed: {e}")
        finally:
            if file_id:
                self._trash(file_id)
