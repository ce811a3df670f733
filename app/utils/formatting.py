import re

from app.utils.code_detection import has_code_content

HTML_DOCUMENT_MARKERS = ('<html>', '<!DOCTYPE', '<div>', '<p>', '<span>', '<body>')

BARE_AMPERSAND = re.compile(r'&(?![a-zA-Z0-9#]+;)')


def _escape_html(text):
    return (text.replace('&', '&amp;')
                .replace('<', '&lt;')
                .replace('>', '&gt;')
                .replace('"', '&quot;')
                .replace("'", '&#x27;'))


def preserve_formatting(text):
    """
    Make code-bearing question text safe to render as HTML.

    Plain text is returned unchanged. Code is wrapped in a <pre> block;
    embedded HTML markup is fully escaped so it shows as source, anything
    else only gets its bare ampersands escaped.
    """
    if not has_code_content(text):
        return text

    if any(marker in text for marker in HTML_DOCUMENT_MARKERS):
        return f'<pre>{_escape_html(text)}</pre>'

    return f'<pre>{BARE_AMPERSAND.sub("&amp;", text)}</pre>'
