from .decorators import role_required, quiz_author_required, get_current_user_data
from .validators import validate_required_fields, sanitize_string, validate_question_data, parse_quiz_details

__all__ = [
    'role_required',
    'quiz_author_required',
    'get_current_user_data',
    'validate_required_fields',
    'sanitize_string',
    'validate_question_data',
    'parse_quiz_details'
]
