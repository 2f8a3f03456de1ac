#!/usr/bin/env python3
"""
formdesk Production Server

Production entry point for serving the dialog API via gunicorn/uvicorn.

Usage:
    # Direct run
    python -m formdesk.serve_web

    # With gunicorn
    gunicorn -c deploy/gunicorn.conf.py

Environment variables:
    FORMDESK_BACKEND_URL — REST backend base URL (default: http://localhost:8000/api)
    FORMDESK_MODE        — admin or viewer (default: admin)
    FORMDESK_CSRF_TOKEN  — value sent in the X-Token header of mutating requests
    FORMDESK_PORT        — Server port (default: 8000)
    FORMDESK_WORKERS     — Number of worker processes (default: 1)
    FORMDESK_LOG_LEVEL   — Log level (default: info)
"""

import logging
import os
import sys


def create_app():
    """Application factory for gunicorn.

    Configures logging from FORMDESK_LOG_LEVEL and returns the FastAPI app.
    """
    level = os.environ.get('FORMDESK_LOG_LEVEL', 'info').upper()
    logging.basicConfig(level=level,
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    from formdesk.app import app
    return app


def main():
    """CLI entry point — run directly with uvicorn (no gunicorn needed)."""
    import argparse

    parser = argparse.ArgumentParser(description='formdesk production server')
    parser.add_argument('--backend-url', type=str, default=None,
                        help='REST backend base URL (overrides FORMDESK_BACKEND_URL env)')
    parser.add_argument('--mode', type=str, default=None, choices=['viewer', 'admin'],
                        help='Server mode (overrides FORMDESK_MODE env, default: admin)')
    parser.add_argument('--port', type=int, default=None,
                        help='Server port (overrides FORMDESK_PORT env, default: 8000)')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of workers (overrides FORMDESK_WORKERS env, default: 1)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Log level (overrides FORMDESK_LOG_LEVEL env, default: info)')
    args = parser.parse_args()

    # CLI args override env vars
    if args.backend_url:
        os.environ['FORMDESK_BACKEND_URL'] = args.backend_url
    if args.mode:
        os.environ['FORMDESK_MODE'] = args.mode
    if args.port:
        os.environ['FORMDESK_PORT'] = str(args.port)
    if args.workers:
        os.environ['FORMDESK_WORKERS'] = str(args.workers)
    if args.log_level:
        os.environ['FORMDESK_LOG_LEVEL'] = args.log_level

    port = int(os.environ.get('FORMDESK_PORT', '8000'))
    workers = int(os.environ.get('FORMDESK_WORKERS', '1'))
    log_level = os.environ.get('FORMDESK_LOG_LEVEL', 'info')

    print("=" * 60)
    print("formdesk (Production)")
    print("=" * 60)
    print(f"Backend: {os.environ.get('FORMDESK_BACKEND_URL', '(default)')}")
    print(f"Mode:    {os.environ.get('FORMDESK_MODE', 'admin')}")
    print(f"Bind:    0.0.0.0:{port}")
    print(f"Workers: {workers}")
    if workers > 1:
        print("WARNING: dialogs live in worker memory; use sticky sessions",
              file=sys.stderr)
    print("=" * 60)
    print()

    import uvicorn
    uvicorn.run(
        'formdesk.serve_web:create_app',
        host='0.0.0.0',
        port=port,
        workers=workers,
        log_level=log_level,
        factory=True,
    )


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\nShutting down formdesk...")
        sys.exit(0)
