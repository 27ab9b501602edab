"""
Entry point for the true hourly wage calculator.

Usage:
    python main.py             # serves the JSON API at localhost:5000
    python main.py --cli       # runs the terminal interface
    python main.py --check     # validates every tax-year configuration
"""

import argparse
import logging


def main() -> None:
    parser = argparse.ArgumentParser(
        description="True Hourly Wage Calculator: tax, NI, pension, student loans and unpaid time",
    )
    parser.add_argument(
        "--cli",
        action="store_true",
        help="Run in terminal mode instead of serving the web API",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate the bundled tax configuration and exit",
    )
    parser.add_argument("--port", type=int, default=5000, help="Port for the web API")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.check:
        from jurisdictions import validate_all
        validate_all()
        print("Configuration OK")
    elif args.cli:
        from cli import run_cli
        run_cli()
    else:
        from app import run_web
        run_web(debug=args.verbose, port=args.port)


if __name__ == "__main__":
    main()
