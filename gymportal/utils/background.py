"""Detached background work.

Tasks submitted here are not tied to the request that started them: they
may finish after the response (and any redirect) has been sent, nobody waits
on them, and a failure is logged as a warning and otherwise dropped.
"""
from concurrent.futures import ThreadPoolExecutor

from flask import current_app

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='gymportal-bg')


def run_detached(func, *args, **kwargs):
    """Run ``func`` on the background pool inside an app context; returns the Future."""
    app = current_app._get_current_object()

    def runner():
        with app.app_context():
            try:
                return func(*args, **kwargs)
            except Exception:
                app.logger.warning("Background task %s failed", func.__name__, exc_info=True)
                return None

    return _executor.submit(runner)
