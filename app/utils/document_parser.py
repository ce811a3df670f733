import re
from typing import List, Optional, Any, Iterator
from io import BytesIO
import logging

# Document parsing libraries
import mammoth
from openpyxl import load_workbook
from bs4 import BeautifulSoup

from app.models.question import OPTION_LETTERS, Question, coerce_marks, coerce_negative_marks
from app.utils.exceptions import InputDecodeError, NoContentExtracted
from app.utils.formatting import preserve_formatting
from app.utils.question_builder import BodyLine, Event, Header, OptionLine, collect_questions

logger = logging.getLogger(__name__)

# Word line grammar
WORD_QUESTION_PATTERN = re.compile(r'^Q\d+\.')
WORD_OPTION_PATTERN = re.compile(r'^([A-D])\)')
MARKS_PATTERN = re.compile(r'\((\d+)\s*marks?\)', re.IGNORECASE)
NEGATIVE_MARKS_PATTERN = re.compile(r'\[Negative:\s*([\d.]+)\]', re.IGNORECASE)

# Elements mammoth emits that start a new line of text
BLOCK_TAGS = ['p', 'div', 'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'li', 'tr', 'pre', 'blockquote']

# Below this, the HTML conversion is assumed to have lost the line structure
MIN_CONVERTED_LENGTH = 50


class DocumentParser:
    """
    Turns uploaded spreadsheets and Word documents into Question objects.

    Spreadsheet layout (first sheet, first row is a header):
        Question | Option A | Option B | Option C | Option D | Correct (A-D) | Marks | Negative marks

    Word layout, one item per line:
        Q1. What does this print? (2 marks) [Negative: 0.5]
        def f():
            return 1
        A) 1*
        B) 2
        C) None
        D) Error
    """

    def __init__(self):
        self.supported_formats = ['.xlsx', '.xls', '.docx', '.doc']

    # ------------------------------------------------------------------
    # Spreadsheets
    # ------------------------------------------------------------------

    def parse_spreadsheet(self, file_content: bytes) -> List[Question]:
        """Parse the first sheet of a workbook into questions."""
        try:
            workbook = load_workbook(BytesIO(file_content), data_only=True)
        except Exception as e:
            logger.error(f"Error opening spreadsheet: {str(e)}")
            raise InputDecodeError("Invalid spreadsheet format") from e

        try:
            if not workbook.worksheets:
                raise InputDecodeError("Spreadsheet has no sheets")

            sheet = workbook.worksheets[0]
            questions = []
            for row_number, row in enumerate(sheet.iter_rows(values_only=True), start=1):
                if row_number == 1:
                    continue  # header row
                question = self._parse_spreadsheet_row(list(row), row_number)
                if question is not None:
                    questions.append(question)
        finally:
            workbook.close()

        if not questions:
            raise NoContentExtracted("No valid questions found in the spreadsheet. Please check the format.")

        logger.info(f"Parsed {len(questions)} questions from spreadsheet")
        return questions

    def _parse_spreadsheet_row(self, row: List[Any], row_number: int) -> Optional[Question]:
        """Parse one data row; None when the row is not a usable question."""
        populated = self._populated_length(row)
        question_text = self._cell_text(row[0]) if row else ''

        if populated < 6 or not question_text:
            logger.debug(f"Skipping row {row_number}: incomplete")
            return None

        options = [self._cell_text(row[col]) for col in range(1, 5)]

        answer = self._cell_text(row[5]).upper()
        if len(answer) != 1 or answer not in OPTION_LETTERS:
            logger.warning(f"Skipping row {row_number}: invalid correct answer '{answer}'")
            return None

        marks = self._parse_int_cell(row[6]) if populated > 6 else 1
        negative_marks = coerce_negative_marks(row[7]) if populated > 7 and row[7] not in (None, '') else 0

        return Question.build(
            text=preserve_formatting(question_text),
            options=options,
            correct_option=OPTION_LETTERS.index(answer),
            marks=marks,
            negative_marks=negative_marks
        )

    @staticmethod
    def _populated_length(row: List[Any]) -> int:
        """Length of the row up to its last non-empty cell"""
        length = len(row)
        while length and (row[length - 1] is None or str(row[length - 1]).strip() == ''):
            length -= 1
        return length

    @staticmethod
    def _cell_text(value: Any) -> str:
        if value is None:
            return ''
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        return str(value).strip()

    @staticmethod
    def _parse_int_cell(value: Any) -> int:
        """Integer prefix of the cell ("2", 2.0, "3 marks"); 1 when absent or invalid."""
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return coerce_marks(value)
        match = re.match(r'\s*(\d+)', str(value or ''))
        return coerce_marks(match.group(1)) if match else 1

    # ------------------------------------------------------------------
    # Word documents
    # ------------------------------------------------------------------

    def parse_word_document(self, file_content: bytes) -> List[Question]:
        """Parse a Word document into questions."""
        text = self._extract_word_text(file_content)
        logger.debug(f"Extracted {len(text)} characters from Word document")

        questions = self.parse_word_text(text)
        if not questions:
            raise NoContentExtracted("No valid questions found in the Word document. Please check the format.")

        logger.info(f"Parsed {len(questions)} questions from Word document")
        return questions

    def parse_word_text(self, text: str) -> List[Question]:
        """Run the Word line grammar over already extracted text."""
        return collect_questions(self._word_events(text), self._render_word_body)

    def _extract_word_text(self, file_content: bytes) -> str:
        """Convert to HTML with mammoth, then back to line-structured text."""
        try:
            result = mammoth.convert_to_html(BytesIO(file_content))
        except Exception as e:
            logger.error(f"Error converting Word document: {str(e)}")
            raise InputDecodeError("Invalid Word document format") from e

        text = self._html_to_text(result.value)

        if '\n' not in text or len(text) < MIN_CONVERTED_LENGTH:
            logger.debug("HTML conversion lost line structure, using raw text extraction")
            try:
                text = mammoth.extract_raw_text(BytesIO(file_content)).value
            except Exception as e:
                logger.error(f"Error extracting raw text: {str(e)}")
                raise InputDecodeError("Invalid Word document format") from e

        return text

    @staticmethod
    def _html_to_text(html_content: str) -> str:
        """
        Paragraph and line-break elements become newlines, inline formatting
        is dropped and entities are decoded back to literal characters.
        """
        soup = BeautifulSoup(html_content, 'html.parser')

        for br in soup.find_all('br'):
            br.replace_with('\n')
        for block in soup.find_all(BLOCK_TAGS):
            block.insert_before('\n')

        text = soup.get_text().replace('\xa0', ' ')
        # Runs of blank lines collapse to one
        text = re.sub(r'(?:[ \t]*\n){3,}', '\n\n', text)
        return text.strip()

    def _word_events(self, text: str) -> Iterator[Event]:
        for line in text.split('\n'):
            if not line.strip():
                continue

            if WORD_QUESTION_PATTERN.match(line):
                yield self._parse_header(line)
            elif WORD_OPTION_PATTERN.match(line):
                yield self._parse_option(line)
            else:
                yield BodyLine(line)

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

        text = WORD_QUESTION_PATTERN.sub('', line, count=1)
        text = MARKS_PATTERN.sub('', text)
        text = NEGATIVE_MARKS_PATTERN.sub('', text)
        return Header(text=text.strip(), marks=marks, negative_marks=negative_marks)

    @staticmethod
    def _parse_option(line: str) -> OptionLine:
        text = WORD_OPTION_PATTERN.sub('', line, count=1).strip()
        is_correct = text.endswith('*')
        if is_correct:
            text = text.rstrip('*').strip()
        return OptionLine(text=text, is_correct=is_correct)

    @staticmethod
    def _render_word_body(lines: List[str]) -> str:
        return preserve_formatting('\n'.join(lines))


def parse_spreadsheet(file_content: bytes) -> List[Question]:
    return DocumentParser().parse_spreadsheet(file_content)


def parse_word_document(file_content: bytes) -> List[Question]:
    return DocumentParser().parse_word_document(file_content)


def parse_word_text(text: str) -> List[Question]:
    return DocumentParser().parse_word_text(text)
