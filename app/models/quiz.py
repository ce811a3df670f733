from dataclasses import replace
from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId
from app import mongo


QUIZ_TYPES = ('academic', 'event')


def calculate_total_marks(questions):
    """Sum of the marks of every question"""
    return sum(question.marks for question in questions)


def apply_negative_marking_default(questions, default_negative_marks):
    """
    Give questions without their own negative marks the quiz-wide default.
    Returns new Question objects; the input list is left untouched.
    """
    if not default_negative_marks or default_negative_marks <= 0:
        return list(questions)

    return [
        replace(question, negative_marks=default_negative_marks)
        if question.negative_marks == 0 else question
        for question in questions
    ]


class Quiz:
    """Quiz model for quizzes built from uploaded question documents"""

    @staticmethod
    def build_quiz_document(details, questions, created_by, source):
        """Assemble the document stored in the quizzes collection"""
        if details.get('negative_marking_enabled'):
            questions = apply_negative_marking_default(
                questions, details.get('default_negative_marks', 0)
            )

        return {
            'title': details['title'],
            'description': details.get('description', ''),
            'type': details.get('type', 'academic'),
            'subject': details.get('subject', ''),
            'duration': details['duration'],
            'start_time': details.get('start_time'),
            'end_time': details.get('end_time'),
            'negative_marking_enabled': bool(details.get('negative_marking_enabled', False)),
            'allowed_groups': details.get('allowed_groups', []),
            'questions': [question.to_dict() for question in questions],
            'total_marks': calculate_total_marks(questions),
            'created_by': created_by,
            'source': source
        }

    @staticmethod
    def create_quiz(quiz_data):
        """Create a new quiz"""
        quiz_data['created_at'] = datetime.utcnow()
        quiz_data['updated_at'] = datetime.utcnow()
        quiz_data['is_active'] = True

        result = mongo.db.quizzes.insert_one(quiz_data)
        quiz_data['_id'] = result.inserted_id
        return quiz_data

    @staticmethod
    def find_by_id(quiz_id):
        """Find quiz by ID"""
        if isinstance(quiz_id, str):
            try:
                quiz_id = ObjectId(quiz_id)
            except InvalidId:
                return None
        return mongo.db.quizzes.find_one({'_id': quiz_id, 'is_active': True})

    @staticmethod
    def serialize(quiz):
        """JSON-safe view of a stored quiz"""
        return {
            'id': str(quiz['_id']),
            'title': quiz.get('title', ''),
            'description': quiz.get('description', ''),
            'type': quiz.get('type', 'academic'),
            'subject': quiz.get('subject', ''),
            'duration': quiz.get('duration'),
            'start_time': quiz.get('start_time').isoformat() if quiz.get('start_time') else None,
            'end_time': quiz.get('end_time').isoformat() if quiz.get('end_time') else None,
            'negative_marking_enabled': quiz.get('negative_marking_enabled', False),
            'allowed_groups': quiz.get('allowed_groups', []),
            'questions': quiz.get('questions', []),
            'total_marks': quiz.get('total_marks', 0),
            'source': quiz.get('source'),
            'created_by': quiz.get('created_by'),
            'created_at': quiz.get('created_at').isoformat() if quiz.get('created_at') else None
        }
