from flask import request, jsonify, current_app
import json
import logging

from app.quizzes import bp
from app.quizzes.uploads import QuizUploadHandler, SPREADSHEET, WORD, IMAGE
from app.models.question import Question
from app.models.quiz import Quiz, calculate_total_marks
from app.utils.decorators import quiz_author_required, get_current_user_data
from app.utils.exceptions import ParseError, UploadError
from app.utils.validators import parse_quiz_details, validate_question_data

logger = logging.getLogger(__name__)


def _parse_upload(kind):
    """Run the parser for the uploaded file(s) of the given kind"""
    handler = QuizUploadHandler(current_app.config)

    if kind == SPREADSHEET:
        return handler.parse_spreadsheet_upload(request.files.get('file'))
    if kind == WORD:
        return handler.parse_word_upload(request.files.get('file'))
    return handler.parse_image_uploads(request.files.getlist('images'))


def _questions_payload(questions):
    return {
        'questions': [question.to_dict() for question in questions],
        'total_questions': len(questions),
        'total_marks': calculate_total_marks(questions)
    }


def _preview_upload(kind):
    try:
        questions = _parse_upload(kind)
    except (UploadError, ParseError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error parsing {kind} upload: {str(e)}")
        return jsonify({'error': f'Processing failed: {str(e)}'}), 500

    return jsonify({
        'message': f'{len(questions)} questions parsed successfully',
        **_questions_payload(questions)
    }), 200


def _save_quiz(details, questions, source):
    user = get_current_user_data()
    quiz_data = Quiz.build_quiz_document(details, questions, created_by=user['id'], source=source)

    try:
        quiz = Quiz.create_quiz(quiz_data)
    except Exception as e:
        logger.error(f"Error saving quiz: {str(e)}")
        return jsonify({'error': f'Failed to save quiz: {str(e)}'}), 500

    logger.info(f"Quiz '{quiz['title']}' created from {source} with {len(questions)} questions")
    return jsonify({
        'message': 'Quiz created successfully',
        'quiz': Quiz.serialize(quiz)
    }), 201


def _create_from_upload(kind, source):
    raw_details = request.form.get('quiz_details')
    if not raw_details:
        return jsonify({'error': 'Quiz details are required'}), 400

    try:
        details_data = json.loads(raw_details)
    except json.JSONDecodeError:
        return jsonify({'error': 'Quiz details must be valid JSON'}), 400

    details, error = parse_quiz_details(details_data)
    if error:
        return jsonify({'error': error}), 400

    try:
        questions = _parse_upload(kind)
    except (UploadError, ParseError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        logger.error(f"Error parsing {kind} upload: {str(e)}")
        return jsonify({'error': f'Processing failed: {str(e)}'}), 500

    return _save_quiz(details, questions, source)


# ==================== PARSE PREVIEW ====================

@bp.route('/parse/excel', methods=['POST'])
@quiz_author_required
def parse_excel():
    """Preview the questions in an uploaded spreadsheet"""
    return _preview_upload(SPREADSHEET)


@bp.route('/parse/word', methods=['POST'])
@quiz_author_required
def parse_word():
    """Preview the questions in an uploaded Word document"""
    return _preview_upload(WORD)


@bp.route('/parse/image', methods=['POST'])
@quiz_author_required
def parse_image():
    """Preview the questions read from uploaded images"""
    return _preview_upload(IMAGE)


# ==================== QUIZ CREATION ====================

@bp.route('/excel', methods=['POST'])
@quiz_author_required
def create_quiz_from_excel():
    """Create a quiz from a spreadsheet upload"""
    return _create_from_upload(SPREADSHEET, 'excel')


@bp.route('/word', methods=['POST'])
@quiz_author_required
def create_quiz_from_word():
    """Create a quiz from a Word document upload"""
    return _create_from_upload(WORD, 'word')


@bp.route('/image', methods=['POST'])
@quiz_author_required
def create_quiz_from_images():
    """Create a quiz from uploaded images"""
    return _create_from_upload(IMAGE, 'image')


@bp.route('', methods=['POST'])
@quiz_author_required
def create_quiz():
    """Create a quiz from reviewed questions sent as JSON"""
    data = request.get_json(silent=True)

    if not data:
        return jsonify({'error': 'No data provided'}), 400

    details, error = parse_quiz_details(data)
    if error:
        return jsonify({'error': error}), 400

    questions_data = data.get('questions')
    if not isinstance(questions_data, list) or not questions_data:
        return jsonify({'error': 'At least one question is required'}), 400

    questions = []
    for index, question_data in enumerate(questions_data, start=1):
        if not isinstance(question_data, dict):
            return jsonify({'error': f'Question {index}: invalid question data'}), 400
        is_valid, error = validate_question_data(question_data)
        if not is_valid:
            return jsonify({'error': f'Question {index}: {error}'}), 400
        questions.append(Question.from_dict(question_data))

    return _save_quiz(details, questions, 'manual')


@bp.route('/<quiz_id>', methods=['GET'])
@quiz_author_required
def get_quiz(quiz_id):
    """Get a single quiz by ID"""
    quiz = Quiz.find_by_id(quiz_id)

    if not quiz:
        return jsonify({'error': 'Quiz not found'}), 404

    return jsonify({
        'message': 'Quiz retrieved successfully',
        'quiz': Quiz.serialize(quiz)
    }), 200


@bp.route('/supported-formats', methods=['GET'])
@quiz_author_required
def get_supported_formats():
    """Describe the upload formats the parsers understand"""
    max_mb = current_app.config['MAX_UPLOAD_SIZE'] // (1024 * 1024)

    format_info = {
        'max_file_size_mb': max_mb,
        'supported_formats': [
            {
                'extension': '.xlsx',
                'name': 'Excel Workbook',
                'endpoint': '/api/quizzes/parse/excel',
                'requirements': [
                    'Only the first sheet is read and its first row is a header',
                    'Columns: Question, Option A, Option B, Option C, Option D, Correct Answer (A-D), Marks, Negative Marks',
                    'Marks default to 1 and negative marks to 0 when left empty',
                    'Rows with a correct answer other than A-D are skipped'
                ]
            },
            {
                'extension': '.docx',
                'name': 'Word Document',
                'endpoint': '/api/quizzes/parse/word',
                'requirements': [
                    'Start each question with Q1., Q2., ...',
                    'Optional marks as (2 marks) and negative marks as [Negative: 0.5] on the question line',
                    'Code may follow the question line; indentation is kept',
                    'Exactly four options A) to D), mark the correct one with a trailing *'
                ]
            },
            {
                'extension': '.png, .jpg, .gif',
                'name': 'Question Sheet Images',
                'endpoint': '/api/quizzes/parse/image',
                'requirements': [
                    'Same layout as Word documents, one or more questions per image',
                    'Mark the correct option with a trailing * or add an "Answer: B" line',
                    'Questions that do not show four options are skipped',
                    'Code indentation is rebuilt automatically'
                ]
            }
        ]
    }

    return jsonify(format_info), 200
