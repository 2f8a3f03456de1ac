#!/usr/bin/env python3
"""
formdesk Development Server

Runs the API with uvicorn on localhost against a backend given on the
command line or via FORMDESK_BACKEND_URL.
"""

import os
import sys


def main():
    import argparse
    parser = argparse.ArgumentParser(description='formdesk development server')
    parser.add_argument('--backend-url', type=str, default=None,
                        help='REST backend base URL (overrides FORMDESK_BACKEND_URL)')
    parser.add_argument('--mode', default='admin', choices=['viewer', 'admin'],
                        help='Server mode: viewer (read-only) or admin (dialogs may submit)')
    parser.add_argument('--port', type=int, default=8080,
                        help='Server port (default: 8080)')
    parser.add_argument('--log-level', type=str, default='info',
                        help='Log level (default: info)')
    args = parser.parse_args()

    if args.backend_url:
        os.environ['FORMDESK_BACKEND_URL'] = args.backend_url
    # Set mode before importing app
    os.environ['FORMDESK_MODE'] = args.mode

    port = args.port
    backend_url = os.environ.get('FORMDESK_BACKEND_URL', '(default)')

    print("=" * 60)
    print("formdesk")
    print("=" * 60)
    print(f"Backend: {backend_url}")
    print(f"Mode:    {args.mode}")
    print(f"Server running at: http://localhost:{port}")
    print("Press Ctrl+C to stop the server")
    print("=" * 60)
    print()

    try:
        import uvicorn
        from .app import app
        uvicorn.run(app, host='127.0.0.1', port=port, log_level=args.log_level)
    except OSError as e:
        print(f"Error: Could not start server: {e}", file=sys.stderr)
        print(f"Port {port} might already be in use.", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    try:
        main()
    except KeyboardInterrupt:
        print("\n\nShutting down formdesk...")
        sys.exit(0)
