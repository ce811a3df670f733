import html

import pytest

from app.utils.formatting import preserve_formatting

PLAIN_SENTENCES = [
    "Hello world",
    "What is the capital of France?",
    "Which of the following is a prime number?",
    "Name the largest planet (1 mark)",
]


class TestPreserveFormatting:

    @pytest.mark.parametrize("text", PLAIN_SENTENCES)
    def test_preserve_formatting_when_plain_text_then_unchanged(self, text):
        assert preserve_formatting(text) == text

    @pytest.mark.parametrize("text", PLAIN_SENTENCES)
    def test_preserve_formatting_when_applied_twice_to_plain_text_then_idempotent(self, text):
        assert preserve_formatting(preserve_formatting(text)) == text

    def test_preserve_formatting_when_code_then_wrapped_in_pre(self):
        text = "def f():\n    return 1"
        assert preserve_formatting(text) == "<pre>def f():\n    return 1</pre>"

    def test_preserve_formatting_when_bare_ampersand_then_escaped(self):
        result = preserve_formatting("def f(a, b):\n    return a & b")
        assert result == "<pre>def f(a, b):\n    return a &amp; b</pre>"

    def test_preserve_formatting_when_entity_present_then_not_double_escaped(self):
        result = preserve_formatting("x = a &amp; b\nprint(x)")
        assert result == "<pre>x = a &amp; b\nprint(x)</pre>"

    def test_preserve_formatting_when_code_has_comparison_then_angle_brackets_kept(self):
        """Only HTML documents get full escaping."""
        result = preserve_formatting("if (a < b) { return a; }")
        assert result == "<pre>if (a < b) { return a; }</pre>"

    def test_preserve_formatting_when_html_markup_then_fully_escaped(self):
        text = "<div class='box'>\n  <p>Tom & \"Jerry\"</p>\n</div>"
        result = preserve_formatting(text)

        assert result == (
            "<pre>&lt;div class=&#x27;box&#x27;&gt;\n"
            "  &lt;p&gt;Tom &amp; &quot;Jerry&quot;&lt;/p&gt;\n"
            "&lt;/div&gt;</pre>"
        )

    def test_preserve_formatting_when_html_markup_then_round_trips(self):
        text = "<html>\n<body>\n<span>5 > 3 & 2 < 4</span>\n</body>\n</html>"
        result = preserve_formatting(text)

        assert result.startswith("<pre>") and result.endswith("</pre>")
        assert html.unescape(result[len("<pre>"):-len("</pre>")]) == text
