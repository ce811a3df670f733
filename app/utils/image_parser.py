import re
import shlex
import logging
import threading
from io import BytesIO
from typing import Iterator, List, Optional, Sequence, Tuple

import pytesseract
from PIL import Image, ImageFilter, ImageOps

from app.models.question import OPTION_LETTERS, Question, coerce_marks, coerce_negative_marks
from app.utils.code_detection import has_code_content
from app.utils.document_parser import MARKS_PATTERN, NEGATIVE_MARKS_PATTERN
from app.utils.exceptions import NoContentExtracted, OCRFailure
from app.utils.formatting import preserve_formatting
from app.utils.indentation import restore_indentation
from app.utils.question_builder import AnswerKey, BodyLine, Event, Header, OptionLine, collect_questions

logger = logging.getLogger(__name__)

# Characters tesseract is allowed to emit: letters, digits and the punctuation used in code
CHAR_WHITELIST = (
    'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789'
    '()[]{}<>:;.,?!@#$%^&*-+=_|\\/"\'` '
)

PAGE_SEGMENTATION_SINGLE_BLOCK = 6
ENGINE_MODE_LSTM_ONLY = 1

MAX_IMAGE_WIDTH = 2000
BINARY_THRESHOLD = 128

# Fixes for mistakes tesseract makes repeatedly on code screenshots
OCR_CORRECTIONS = [
    (re.compile(r'def\s+(\w+)\(\)\)+:'), r'def \1():'),
    (re.compile(r'\(\)\)+:'), '():'),
    (re.compile(r'©\)'), 'C)'),
    (re.compile(r'\bprint \('), 'print('),
    (re.compile(r'\bredy\b'), 'ready'),
]

QUESTION_HEADER = re.compile(r'^(?:Q\s*\d+|Question\s*\d+|\d+\.(?!\d))[.:)]?\s*', re.IGNORECASE)
OPTION_PATTERN = re.compile(r'^([A-Da-d])\)\s*(.*)$')
# Option markers tesseract commonly misreads
GARBLED_OPTION_PATTERN = re.compile(r'^([|lIoO0©])\)\s*(.*)$')
ANSWER_PATTERN = re.compile(r'^(?:Answer|Ans)\s*[:\-]\s*\(?([A-Da-d])\)?\.?$', re.IGNORECASE)
TRAILING_X_MARKER = re.compile(r'(?<=[\s\d)\]])x$')


def build_tesseract_config() -> str:
    whitelist = shlex.quote(f'tessedit_char_whitelist={CHAR_WHITELIST}')
    return (
        f'--oem {ENGINE_MODE_LSTM_ONLY} --psm {PAGE_SEGMENTATION_SINGLE_BLOCK} '
        f'-c preserve_interword_spaces=1 -c {whitelist}'
    )


class TesseractEngine:
    """
    Handle on the tesseract OCR engine.

    Use it as a context manager around a batch of images. Calls to
    ``recognize`` are serialised, so a handle shared between requests never
    runs two recognitions at once.
    """

    def __init__(self, lang: str = 'eng', timeout: int = 30, preprocess: bool = True,
                 tesseract_cmd: Optional[str] = None):
        self.lang = lang
        self.timeout = timeout
        self.preprocess = preprocess
        self.tesseract_cmd = tesseract_cmd
        self.config = build_tesseract_config()
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> 'TesseractEngine':
        return cls(
            lang=config.get('OCR_LANGUAGE', 'eng'),
            timeout=config.get('OCR_TIMEOUT', 30),
            preprocess=config.get('OCR_PREPROCESS', True),
            tesseract_cmd=config.get('TESSERACT_CMD')
        )

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def open(self):
        """Point pytesseract at the binary and make sure it runs."""
        if self.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self.tesseract_cmd
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as e:
            logger.error(f"Tesseract is not installed or not on PATH: {str(e)}")
            raise
        logger.debug(f"OCR engine ready (tesseract {version}, lang={self.lang})")

    def close(self):
        logger.debug("OCR engine released")

    @staticmethod
    def prepare_image(image: Image.Image) -> Image.Image:
        """Greyscale, cap the width, sharpen, stretch contrast and binarise."""
        image = image.convert('L')
        if image.width > MAX_IMAGE_WIDTH:
            height = max(1, round(image.height * MAX_IMAGE_WIDTH / image.width))
            image = image.resize((MAX_IMAGE_WIDTH, height))
        image = image.filter(ImageFilter.SHARPEN)
        image = ImageOps.autocontrast(image)
        return image.point(lambda value: 255 if value >= BINARY_THRESHOLD else 0)

    def recognize(self, image_bytes: bytes) -> str:
        """OCR one image. Raises OCRFailure for unreadable images, engine errors and timeouts."""
        with self._lock:
            try:
                with Image.open(BytesIO(image_bytes)) as image:
                    prepared = self.prepare_image(image) if self.preprocess else image.convert('L')
                    return pytesseract.image_to_string(
                        prepared, lang=self.lang, config=self.config, timeout=self.timeout
                    )
            except (RuntimeError, OSError, ValueError, Image.DecompressionBombError) as e:
                # pytesseract reports timeouts as RuntimeError, PIL unreadable images as OSError
                # and oversized ones as DecompressionBombError
                raise OCRFailure(f"OCR failed: {str(e)}") from e


def correct_ocr_text(text: str) -> str:
    for pattern, replacement in OCR_CORRECTIONS:
        text = pattern.sub(replacement, text)
    return text


def split_correct_marker(text: str) -> Tuple[str, bool]:
    """Strip a trailing '*' (or OCR's 'x' for it) and report whether it was there."""
    stripped = text.rstrip()
    if stripped.endswith('*'):
        return stripped.rstrip('*').rstrip(), True

    marker = TRAILING_X_MARKER.search(stripped)
    if marker and stripped[:marker.start()].strip():
        return stripped[:marker.start()].rstrip(), True

    return stripped, False


class ImageParser:
    """Extracts questions from photographed or scanned question sheets."""

    def parse_images(self, files: Sequence[bytes], engine=None) -> List[Question]:
        """
        OCR each image in turn and collect the questions found.

        A question never spans two images. Images that fail OCR are logged
        and skipped; the batch fails only when no image yields a question.

        Args:
            files: raw image payloads
            engine: object with ``recognize(bytes) -> str``; a TesseractEngine
                is opened for the batch when omitted
        """
        if engine is None:
            with TesseractEngine() as owned_engine:
                return self._parse_batch(files, owned_engine)
        return self._parse_batch(files, engine)

    def _parse_batch(self, files: Sequence[bytes], engine) -> List[Question]:
        questions = []

        for index, image_bytes in enumerate(files, start=1):
            try:
                text = engine.recognize(image_bytes)
            except OCRFailure as e:
                logger.error(f"Skipping image {index}: {e.message}")
                continue

            logger.debug(f"Image {index} OCR text: {text[:200]!r}")
            image_questions = self.parse_ocr_text(text)
            logger.info(f"Image {index}: extracted {len(image_questions)} questions")
            questions.extend(image_questions)

        if not questions:
            raise NoContentExtracted("No valid questions could be extracted from the images")

        return questions

    def parse_ocr_text(self, text: str) -> List[Question]:
        """Run the OCR line grammar over the text of one image."""
        return collect_questions(self._ocr_events(correct_ocr_text(text)), self._render_ocr_body)

    def _ocr_events(self, text: str) -> Iterator[Event]:
        for raw_line in text.split('\n'):
            line = raw_line.strip()
            if not line:
                continue

            if QUESTION_HEADER.match(line):
                yield self._parse_header(line)
                continue

            answer = ANSWER_PATTERN.match(line)
            if answer:
                yield AnswerKey(OPTION_LETTERS.index(answer.group(1).upper()))
                continue

            option = OPTION_PATTERN.match(line) or GARBLED_OPTION_PATTERN.match(line)
            if option:
                option_text, is_correct = split_correct_marker(option.group(2))
                yield OptionLine(text=option_text, is_correct=is_correct)
                continue

            yield BodyLine(raw_line.rstrip())

    @staticmethod
    def _parse_header(line: str) -> Header:
        marks = 1
        negative_marks = 0.0

        marks_match = MARKS_PATTERN.search(line)
        if marks_match:
            marks = coerce_marks(marks_match.group(1))

        negative_match = NEGATIVE_MARKS_PATTERN.search(line)
        if negative_match:
            negative_marks = coerce_negative_marks(negative_match.group(1))

        text = QUESTION_HEADER.sub('', line, count=1)
        text = MARKS_PATTERN.sub('', text)
        text = NEGATIVE_MARKS_PATTERN.sub('', text)
        return Header(text=text.strip(), marks=marks, negative_marks=negative_marks)

    @staticmethod
    def _render_ocr_body(lines: List[str]) -> str:
        if has_code_content('\n'.join(lines)):
            lines = restore_indentation(lines)
        return preserve_formatting('\n'.join(lines))


def parse_images(files: Sequence[bytes], engine=None) -> List[Question]:
    return ImageParser().parse_images(files, engine=engine)


def parse_ocr_text(text: str) -> List[Question]:
    return ImageParser().parse_ocr_text(text)
