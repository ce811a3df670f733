from functools import wraps
from flask import jsonify
from flask_jwt_extended import jwt_required, get_jwt, get_jwt_identity

# Roles allowed to build quizzes from uploaded documents
QUIZ_AUTHOR_ROLES = ('faculty', 'admin', 'event')


def role_required(*allowed_roles):
    """Decorator to check if user has required role"""
    def decorator(f):
        @wraps(f)
        @jwt_required()
        def decorated_function(*args, **kwargs):
            claims = get_jwt()
            role = claims.get('role')

            if role not in allowed_roles:
                return jsonify({
                    'error': 'Access denied. Insufficient permissions.'
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def quiz_author_required(f):
    """Decorator for routes that create quizzes (faculty, admin, event managers)"""
    return role_required(*QUIZ_AUTHOR_ROLES)(f)


def get_current_user_data():
    """Helper function to get current user data from token"""
    user_id = get_jwt_identity()
    claims = get_jwt()

    return {
        'id': user_id,
        'role': claims.get('role'),
        'name': claims.get('name'),
        'email': claims.get('email')
    }
