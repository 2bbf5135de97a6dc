"""
Uniform response envelopes.

Success: {statusCode, data, message, success}
Error:   {statusCode, message, success: false, data: null, errors: [...]}
"""
from flask import jsonify

from utils.results import Failure


def api_response(data=None, message: str = "Success", status: int = 200):
    payload = {
        "statusCode": status,
        "data": data,
        "message": message,
        "success": status < 400,
    }
    return jsonify(payload), status


def error_response(message: str, status: int, errors: list | None = None):
    payload = {
        "statusCode": status,
        "message": message,
        "success": False,
        "data": None,
        "errors": errors or [],
    }
    return jsonify(payload), status


def failure_response(fail: Failure):
    return error_response(fail.message, fail.status_code, fail.errors)
