import io
import logging
import os

from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseDownload

from core.errors import AssetUnavailable
from utils.config import IMAGE_EXTENSIONS

logger = logging.getLogger(__name__)


def find_part_image(store, part_no):
    """
    Part image bytes: {partNo}.jpg first, then {partNo}.jpeg. None if neither exists.
    Store errors surface as AssetUnavailable.
    """
    for ext in IMAGE_EXTENSIONS:
        try:
            data = store.get_blob(part_no, ext)
        except AssetUnavailable:
            raise
        except Exception as e:
            raise AssetUnavailable(f"image fetch error: {e}")
        if data:
            return data
    return None


class LocalAssetStore:
    """Images in a local folder, named {partNo}.{ext}."""

    def __init__(self, directory):
        self.directory = directory

    def get_blob(self, part_no, ext):
        path = os.path.join(self.directory, f"{part_no}.{ext}")
        if not os.path.isfile(path):
            return None
        with open(path, "rb") as f:
            return f.read()


class DriveAssetStore:
    """Images in one Google Drive folder, looked up by exact file name."""

    def __init__(self, credentials, folder_id, service=None):
        self.folder_id = folder_id
        self.service = service or build("drive", "v3", credentials=credentials, cache_discovery=False)

    def _find_file_id(self, filename):
        safe_name = filename.replace("\\", "\\\\").replace("'", "\\'")
        query = f"name = '{safe_name}' and '{self.folder_id}' in parents and trashed = false"
        result = self.service.files().list(
            q=query,
            fields="files(id, name)",
            pageSize=1,
            supportsAllDrives=True,
            includeItemsFromAllDrives=True,
        ).execute()
        files = result.get("files", [])
        return files[0]["id"] if files else None

    def get_blob(self, part_no, ext):
        file_id = self._find_file_id(f"{part_no}.{ext}")
        if not file_id:
            return None

        request = self.service.files().get_media(fileId=file_id, supportsAllDrives=True)
        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, request)
        done = False
        while not done:
            _, done = downloader.next_chunk()
        logger.info(f"Fetched image {part_no}.{ext} from Drive")
        return buffer.getvalue()
