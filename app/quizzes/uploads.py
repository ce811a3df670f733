import os
import logging
from typing import Any, Dict, List

from werkzeug.utils import secure_filename

from app.models.question import Question
from app.utils.document_parser import DocumentParser
from app.utils.exceptions import UploadError
from app.utils.image_parser import ImageParser, TesseractEngine

logger = logging.getLogger(__name__)

SPREADSHEET = 'spreadsheet'
WORD = 'word'
IMAGE = 'image'

ALLOWED_MIME_TYPES = {
    SPREADSHEET: {
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        'application/vnd.ms-excel',
    },
    WORD: {
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
        'application/msword',
    },
    IMAGE: {
        'image/jpeg',
        'image/png',
        'image/gif',
    },
}

# Used only when the client sends a generic content type
ALLOWED_EXTENSIONS = {
    SPREADSHEET: {'.xlsx', '.xls'},
    WORD: {'.docx', '.doc'},
    IMAGE: {'.jpg', '.jpeg', '.png', '.gif'},
}
GENERIC_MIME_TYPES = {'', 'application/octet-stream'}


class QuizUploadHandler:
    """Validate uploaded question files and hand them to the matching parser."""

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.parser = DocumentParser()
        self.image_parser = ImageParser()
        self.max_file_size = config.get('MAX_UPLOAD_SIZE', 5 * 1024 * 1024)
        self.max_images = config.get('MAX_IMAGES_PER_UPLOAD', 10)

    def parse_spreadsheet_upload(self, file) -> List[Question]:
        content = self.read_file(file, SPREADSHEET)
        return self.parser.parse_spreadsheet(content)

    def parse_word_upload(self, file) -> List[Question]:
        content = self.read_file(file, WORD)
        return self.parser.parse_word_document(content)

    def parse_image_uploads(self, files) -> List[Question]:
        files = [file for file in files if file and file.filename]
        if not files:
            raise UploadError('No images provided')
        if len(files) > self.max_images:
            raise UploadError(f'Too many images. Maximum: {self.max_images}')

        payloads = [self.read_file(file, IMAGE) for file in files]

        with TesseractEngine.from_config(self.config) as engine:
            return self.image_parser.parse_images(payloads, engine=engine)

    def read_file(self, file, kind: str) -> bytes:
        """Validate an uploaded file and return its bytes."""
        self._validate_file(file, kind)

        content = file.read()
        if not content:
            raise UploadError('Uploaded file is empty')
        if len(content) > self.max_file_size:
            raise UploadError(f'File too large. Maximum size: {self.max_file_size // (1024*1024)}MB')

        logger.debug(f"Accepted {kind} upload {secure_filename(file.filename)} ({len(content)} bytes)")
        return content

    def _validate_file(self, file, kind: str):
        if not file:
            raise UploadError('No file provided')

        if not file.filename:
            raise UploadError('No file selected')

        mimetype = (file.mimetype or '').lower()
        if mimetype in ALLOWED_MIME_TYPES[kind]:
            return

        file_ext = os.path.splitext(secure_filename(file.filename).lower())[1]
        if mimetype in GENERIC_MIME_TYPES and file_ext in ALLOWED_EXTENSIONS[kind]:
            return

        logger.warning(f"Rejected {kind} upload {file.filename} with type {mimetype or 'unknown'}")
        raise UploadError(
            f'Unsupported file type: {mimetype or file_ext or "unknown"}. '
            f'Supported: {", ".join(sorted(ALLOWED_EXTENSIONS[kind]))}'
        )
