from datetime import datetime, timezone


def validate_required_fields(data, required_fields):
    """
    Validate that required fields are present in data.
    Returns tuple (is_valid, missing_fields)
    """
    missing = []
    for field in required_fields:
        if field not in data or data[field] is None or data[field] == '':
            missing.append(field)

    return len(missing) == 0, missing


def sanitize_string(value, max_length=None):
    """
    Sanitize a string value by stripping whitespace
    and optionally truncating to max_length.
    """
    if not isinstance(value, str):
        return value

    value = value.strip()

    if max_length and len(value) > max_length:
        value = value[:max_length]

    return value


def validate_question_data(question_data):
    """
    Validate a multiple-choice question submitted as JSON.
    Returns tuple (is_valid, error_message)
    """
    required_fields = ['question_text', 'options', 'correct_option']
    is_valid, missing = validate_required_fields(question_data, required_fields)

    if not is_valid:
        return False, f"Missing required fields: {', '.join(missing)}"

    if not isinstance(question_data.get('question_text'), str):
        return False, "Question text must be text"

    options = question_data.get('options')
    if not isinstance(options, list) or len(options) != 4:
        return False, "Questions must have exactly 4 options"

    if not all(isinstance(option, str) for option in options):
        return False, "Options must be text"

    correct_option = question_data.get('correct_option')
    if not isinstance(correct_option, int) or isinstance(correct_option, bool) or not 0 <= correct_option <= 3:
        return False, "Invalid correct option index"

    marks = question_data.get('marks', 1)
    if not isinstance(marks, (int, float)) or isinstance(marks, bool) or marks < 1:
        return False, "Marks must be a positive number"

    negative_marks = question_data.get('negative_marks', 0)
    if not isinstance(negative_marks, (int, float)) or isinstance(negative_marks, bool) or negative_marks < 0:
        return False, "Negative marks cannot be negative"

    return True, None


def _parse_timestamp(value):
    """ISO 8601 string to naive UTC datetime"""
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_quiz_details(data):
    """
    Validate and normalise the quiz fields sent alongside an upload.
    Returns tuple (details, error_message)
    """
    if not isinstance(data, dict):
        return None, "Quiz details must be a JSON object"

    is_valid, missing = validate_required_fields(data, ['title', 'duration'])
    if not is_valid:
        return None, f"Missing required fields: {', '.join(missing)}"

    try:
        duration = int(data['duration'])
    except (TypeError, ValueError):
        return None, "Duration must be a whole number of minutes"
    if duration < 1:
        return None, "Duration must be at least 1 minute"

    quiz_type = data.get('type', 'academic')
    if quiz_type not in ('academic', 'event'):
        return None, "Invalid quiz type. Must be 'academic' or 'event'"

    start_time = None
    end_time = None
    try:
        if data.get('start_time'):
            start_time = _parse_timestamp(data['start_time'])
        if data.get('end_time'):
            end_time = _parse_timestamp(data['end_time'])
    except (AttributeError, ValueError):
        return None, "Invalid date format. Use ISO 8601"

    if start_time and end_time and end_time <= start_time:
        return None, "End time must be after start time"

    try:
        default_negative_marks = float(data.get('default_negative_marks', 0) or 0)
    except (TypeError, ValueError):
        return None, "Default negative marks must be a number"
    if default_negative_marks < 0:
        return None, "Default negative marks cannot be negative"

    allowed_groups = data.get('allowed_groups', [])
    if not isinstance(allowed_groups, list):
        return None, "Allowed groups must be a list"

    return {
        'title': sanitize_string(data['title'], max_length=200),
        'description': sanitize_string(data.get('description', ''), max_length=2000),
        'subject': sanitize_string(data.get('subject', ''), max_length=100),
        'type': quiz_type,
        'duration': duration,
        'start_time': start_time,
        'end_time': end_time,
        'negative_marking_enabled': bool(data.get('negative_marking_enabled', False)),
        'default_negative_marks': default_negative_marks,
        'allowed_groups': [sanitize_string(group) for group in allowed_groups]
    }, None
