"""
Request logging and error tracking
"""
from flask import request, g, has_request_context
import time
import logging
import json

# Configure logger
logger = logging.getLogger(__name__)

# Requests whose 4xx responses are guard rejections rather than failures
SUBMISSION_ENDPOINT = 'guard.check_submission'

# Fields never written to the log
SENSITIVE_FIELDS = {'password', 'current_password', 'new_password', 'confirm_password', 'token', 'secret', 'csrfToken'}


def redact(body):
    """Copy of a JSON body with sensitive fields masked"""
    if not isinstance(body, dict):
        return body
    return {k: '***' if k in SENSITIVE_FIELDS else v for k, v in body.items()}


class PerformanceMonitor:
    """Track request counts per endpoint"""

    def __init__(self):
        self.metrics = {
            'total_requests': 0,
            'failed_requests': 0,
            'rejected_submissions': 0,
            'endpoint_stats': {}
        }

    def record_request(self, endpoint: str, duration: float, status_code: int):
        """Record request metrics"""
        self.metrics['total_requests'] += 1

        stats = self.metrics['endpoint_stats'].setdefault(endpoint, {
            'count': 0,
            'total_time': 0,
            'avg_time': 0
        })
        stats['count'] += 1
        stats['total_time'] += duration
        stats['avg_time'] = stats['total_time'] / stats['count']

        if endpoint == SUBMISSION_ENDPOINT and 400 <= status_code < 500:
            self.metrics['rejected_submissions'] += 1
        elif status_code >= 400:
            self.metrics['failed_requests'] += 1

    def get_stats(self):
        """Get current metrics"""
        return self.metrics


# Global monitor instance
performance_monitor = PerformanceMonitor()


def request_logger_middleware(app):
    """
    Middleware to log all requests
    """
    @app.before_request
    def before_request():
        g.start_time = time.time()

        logger.info(
            f"Incoming: {request.method} {request.path} | "
            f"IP: {request.remote_addr} | "
            f"User-Agent: {request.headers.get('User-Agent', 'Unknown')}"
        )

        # Log request body for POST/PUT (excluding sensitive data)
        if request.method in ['POST', 'PUT', 'PATCH'] and request.is_json:
            body = request.get_json(silent=True)
            logger.debug(f"Request body: {json.dumps(redact(body))}")

    @app.after_request
    def after_request(response):
        if hasattr(g, 'start_time'):
            duration = time.time() - g.start_time

            logger.info(
                f"Response: {request.method} {request.path} | "
                f"Status: {response.status_code} | "
                f"Duration: {duration:.3f}s"
            )

            response.headers['X-Response-Time'] = f"{duration:.3f}s"

            performance_monitor.record_request(
                endpoint=request.endpoint or request.path,
                duration=duration,
                status_code=response.status_code
            )

        return response


class ErrorTracker:
    """Track and log application errors"""

    def __init__(self, max_errors=100):
        self.errors = []
        self.max_errors = max_errors  # Keep last 100 errors

    def log_error(self, error_type: str, message: str, context: dict = None):
        """Log an error with context"""
        in_request = has_request_context()
        error_entry = {
            'timestamp': time.time(),
            'type': error_type,
            'message': message,
            'context': context or {},
            'request': {
                'method': request.method if in_request else None,
                'path': request.path if in_request else None,
                'ip': request.remote_addr if in_request else None
            }
        }

        self.errors.append(error_entry)

        # Keep only last max_errors
        if len(self.errors) > self.max_errors:
            self.errors = self.errors[-self.max_errors:]

        logger.error(
            f"ERROR TRACKED: {error_type} | {message}",
            extra={'error_context': context}
        )

    def get_recent_errors(self, limit: int = 10):
        """Get recent errors"""
        return self.errors[-limit:]

    def get_error_stats(self):
        """Get error statistics"""
        error_types = {}
        for error in self.errors:
            error_type = error['type']
            error_types[error_type] = error_types.get(error_type, 0) + 1

        return {
            'total_errors': len(self.errors),
            'by_type': error_types,
            'recent_errors': self.get_recent_errors(5)
        }


# Global error tracker
error_tracker = ErrorTracker()
