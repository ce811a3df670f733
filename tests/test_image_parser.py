"""
Tests for OCR question extraction. Tesseract itself is replaced by a fake
engine so these run without the binary installed.
"""

from io import BytesIO

import pytest
from PIL import Image

from app.utils.exceptions import NoContentExtracted, OCRFailure
from app.utils.image_parser import (
    TesseractEngine,
    build_tesseract_config,
    correct_ocr_text,
    parse_images,
    parse_ocr_text,
    split_correct_marker,
)

FACTORIAL_SHEET = (
    "Q2. What is the output? (2 marks) [Negative: 0.5]\n"
    "\n"
    "def factorial(n):\n"
    "if n <= 1:\n"
    "return 1\n"
    "return n * factorial(n-1)\n"
    "\n"
    "print(factorial(4))\n"
    "\n"
    "A) 24*\n"
    "B) 12\n"
    "C) 16\n"
    "D) Error"
)

CAPITALS_SHEET = "Q1. Capital of France?\nA) Berlin\nB) Paris*\nC) Rome\nD) Madrid"


def png_bytes(width, height):
    buffer = BytesIO()
    Image.new("1", (width, height), color=1).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeEngine:
    """Returns canned OCR text per image, raising when given an exception."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    def recognize(self, image_bytes):
        result = self.results[self.calls]
        self.calls += 1
        if isinstance(result, Exception):
            raise result
        return result


class TestParseImages:

    def test_parse_images_when_one_image_fails_then_others_still_parsed(self):
        engine = FakeEngine([OCRFailure("OCR failed: timeout"), CAPITALS_SHEET])

        questions = parse_images([b"first", b"second"], engine=engine)

        assert engine.calls == 2
        assert len(questions) == 1
        assert questions[0].options == ("Berlin", "Paris", "Rome", "Madrid")
        assert questions[0].correct_option == 1

    def test_parse_images_when_every_image_fails_then_no_content(self):
        engine = FakeEngine([OCRFailure("bad"), OCRFailure("worse")])

        with pytest.raises(NoContentExtracted, match="No valid questions could be extracted from the images"):
            parse_images([b"a", b"b"], engine=engine)

    def test_parse_images_when_no_complete_question_then_no_content(self):
        engine = FakeEngine(["Q1. Only two options\nA) yes\nB) no"])

        with pytest.raises(NoContentExtracted):
            parse_images([b"a"], engine=engine)

    def test_parse_images_when_image_exceeds_pixel_limit_then_skipped(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        monkeypatch.setattr(
            "app.utils.image_parser.pytesseract.image_to_string",
            lambda image, lang, config, timeout: CAPITALS_SHEET
        )

        questions = parse_images([png_bytes(100, 100), png_bytes(40, 20)], engine=TesseractEngine())

        assert len(questions) == 1
        assert questions[0].options == ("Berlin", "Paris", "Rome", "Madrid")

    def test_parse_images_when_several_images_then_questions_in_order(self):
        second = CAPITALS_SHEET.replace("Q1.", "Q3.").replace("France", "Italy")
        engine = FakeEngine([FACTORIAL_SHEET, second])

        questions = parse_images([b"a", b"b"], engine=engine)

        assert len(questions) == 2
        assert questions[0].is_code_question is True
        assert "Italy" in questions[1].text


class TestParseOcrText:

    def test_parse_ocr_text_when_code_lost_indentation_then_restored(self):
        question = parse_ocr_text(FACTORIAL_SHEET)[0]

        assert question.text.startswith("<pre>What is the output?\ndef factorial(n):\n")
        assert "def factorial(n):\n    if n <= 1:\n        return 1" in question.text
        assert question.text.endswith("\nprint(factorial(4))</pre>")
        assert question.options == ("24", "12", "16", "Error")
        assert question.correct_option == 0
        assert question.marks == 2
        assert question.negative_marks == 0.5
        assert question.is_code_question is True

    def test_parse_ocr_text_when_answer_line_then_sets_correct_option(self):
        text = "Q1. Capital of France?\nA) Berlin\nB) Paris\nC) Rome\nD) Madrid\nAnswer: C"
        assert parse_ocr_text(text)[0].correct_option == 2

    def test_parse_ocr_text_when_question_word_header_then_recognised(self):
        text = "Question 3: Largest ocean?\na) Atlantic\nb) Pacific*\nc) Indian\nd) Arctic"

        question = parse_ocr_text(text)[0]

        assert question.text == "Largest ocean?"
        assert question.correct_option == 1

    def test_parse_ocr_text_when_numbered_header_then_recognised(self):
        text = "1. Smallest prime?\nA) 1\nB) 2 x\nC) 3\nD) 5"

        question = parse_ocr_text(text)[0]

        assert question.text == "Smallest prime?"
        assert question.options == ("1", "2", "3", "5")
        assert question.correct_option == 1

    def test_parse_ocr_text_when_garbled_option_markers_then_read_as_options(self):
        text = "Q1. Pick one\n|) first\nB) second\n©) third*\nD) fourth"

        question = parse_ocr_text(text)[0]

        assert question.options == ("first", "second", "third", "fourth")
        assert question.correct_option == 2

    @pytest.mark.parametrize("first, third", [
        ("I", "0"),
        ("l", "O"),
        ("A", "o"),
    ])
    def test_parse_ocr_text_when_letter_misread_as_digit_or_vowel_then_read_as_option(self, first, third):
        text = f"Q1. Pick one\n{first}) first\nB) second\n{third}) third\nD) fourth"

        questions = parse_ocr_text(text)

        assert len(questions) == 1
        assert questions[0].options == ("first", "second", "third", "fourth")

    def test_parse_ocr_text_when_fewer_than_four_options_then_dropped(self):
        text = "Q1. Incomplete\nA) a\nB) b\nC) c\nQ2. Complete\nA) a\nB) b\nC) c\nD) d"

        questions = parse_ocr_text(text)

        assert [q.text for q in questions] == ["Complete"]


class TestOcrHelpers:

    @pytest.mark.parametrize("raw, expected", [
        ("def main())):", "def main():"),
        ("def main()):", "def main():"),
        ("run()):", "run():"),
        ("©) 16", "C) 16"),
        ("print (x)", "print(x)"),
        ("are you redy", "are you ready"),
    ])
    def test_correct_ocr_text_when_known_mistake_then_fixed(self, raw, expected):
        assert correct_ocr_text(raw) == expected

    @pytest.mark.parametrize("raw, expected", [
        ("24*", ("24", True)),
        ("24 *", ("24", True)),
        ("24x", ("24", True)),
        ("12 x", ("12", True)),
        ("max", ("max", False)),
        ("x", ("x", False)),
        ("Error", ("Error", False)),
    ])
    def test_split_correct_marker_when_called_then_marker_detected(self, raw, expected):
        assert split_correct_marker(raw) == expected

    def test_build_tesseract_config_when_called_then_single_block_lstm(self):
        config = build_tesseract_config()

        assert "--psm 6" in config
        assert "--oem 1" in config
        assert "preserve_interword_spaces=1" in config
        assert "tessedit_char_whitelist=" in config


class TestTesseractEngine:

    def test_prepare_image_when_wide_image_then_downscaled_and_binarised(self):
        image = Image.new("RGB", (3000, 300), color="white")
        image.paste((90, 90, 90), (100, 100, 400, 200))

        prepared = TesseractEngine.prepare_image(image)

        assert prepared.mode == "L"
        assert prepared.size == (2000, 200)
        assert set(prepared.getdata()) <= {0, 255}

    def test_prepare_image_when_narrow_image_then_not_enlarged(self):
        prepared = TesseractEngine.prepare_image(Image.new("L", (400, 100), color=255))
        assert prepared.size == (400, 100)

    def test_recognize_when_bytes_are_not_an_image_then_ocr_failure(self):
        with pytest.raises(OCRFailure):
            TesseractEngine().recognize(b"definitely not an image")

    def test_recognize_when_decompression_bomb_then_ocr_failure(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)

        with pytest.raises(OCRFailure, match="OCR failed"):
            TesseractEngine().recognize(png_bytes(100, 100))

    def test_from_config_when_called_then_settings_applied(self):
        engine = TesseractEngine.from_config({'OCR_LANGUAGE': 'eng+fra', 'OCR_TIMEOUT': 5, 'OCR_PREPROCESS': False})

        assert engine.lang == 'eng+fra'
        assert engine.timeout == 5
        assert engine.preprocess is False

    def test_recognize_when_valid_png_then_text_from_tesseract(self, monkeypatch):
        captured = {}

        def fake_image_to_string(image, lang, config, timeout):
            captured.update(mode=image.mode, lang=lang, timeout=timeout)
            return "Q1. text"

        monkeypatch.setattr("app.utils.image_parser.pytesseract.image_to_string", fake_image_to_string)
        buffer = BytesIO()
        Image.new("RGB", (50, 20), color="white").save(buffer, format="PNG")

        text = TesseractEngine(timeout=7).recognize(buffer.getvalue())

        assert text == "Q1. text"
        assert captured == {'mode': 'L', 'lang': 'eng', 'timeout': 7}
