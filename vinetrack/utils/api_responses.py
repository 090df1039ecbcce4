from functools import wraps
from typing import Any, Dict, List, Optional

from flask import Response, current_app, jsonify, request

from .validation_helpers import FieldValidationError


class APIResponse:
    """Standardized API response handler"""

    @staticmethod
    def success(data: Any = None, message: str = "Success", status_code: int = 200) -> Response:
        """Standard success response"""
        response_data = {
            'success': True,
            'message': message,
            'data': data
        }
        return jsonify(response_data), status_code

    @staticmethod
    def error(message: str, errors: Optional[Dict] = None, status_code: int = 400) -> Response:
        """Standard error response"""
        response_data = {
            'success': False,
            'message': message,
            'errors': errors or {}
        }
        return jsonify(response_data), status_code

    @staticmethod
    def validation_error(errors: Dict[str, List[str]], message: str = "Validation failed") -> Response:
        """Validation error response"""
        return APIResponse.error(
            message=message,
            errors=errors,
            status_code=422
        )

    @staticmethod
    def forbidden(message: str = "Access denied") -> Response:
        """403 error response"""
        return APIResponse.error(
            message=message,
            status_code=403
        )

    @staticmethod
    def conflict(message: str, errors: Optional[Dict] = None) -> Response:
        """409 error response"""
        return APIResponse.error(message=message, errors=errors, status_code=409)

    @staticmethod
    def from_store_result(result, resource: str = "Resource") -> Response:
        """Error response for a failed ``ApiResult``"""
        if result.kind == 'missing':
            return APIResponse.error(message=result.error or f"{resource} not found", status_code=404)
        if result.kind == 'validation':
            return APIResponse.validation_error(
                result.field_errors or {'general': [result.error]}, message=result.error
            )
        return APIResponse.error(result.error or "Request failed", status_code=500)

    @staticmethod
    def handle_request_content():
        """Smart request content handling"""
        if request.is_json:
            return request.get_json(silent=True) or {}
        elif request.form:
            return request.form.to_dict()
        else:
            return {}


def api_route(func):
    """Decorator for API routes with consistent error handling"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except FieldValidationError as e:
            return APIResponse.validation_error(e.as_errors(), message=str(e))
        except ValueError as e:
            return APIResponse.validation_error({'general': [str(e)]}, message=str(e))
        except PermissionError as e:
            return APIResponse.forbidden(str(e))
        except Exception as e:
            current_app.logger.exception(f"API error in {func.__name__}: {str(e)}")
            return APIResponse.error("Internal server error", status_code=500)

    return wrapper


__all__ = ['APIResponse', 'api_route']
