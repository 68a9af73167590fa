"""
UltraLinq Report Service Entry Point

Run with: uvicorn ultralinq_helper.service.app:create_app --factory --reload --port 3000
Or: python main.py [--port 3000] [--reload]
"""

import sys

from ultralinq_helper.cli import main

if __name__ == "__main__":
    sys.exit(main(["serve"] + sys.argv[1:]))
