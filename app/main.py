"""
HTTP entrypoint for Bill Ledger.

Run with:
    uvicorn app.main:app
or:
    python -m app.main
"""

import uvicorn

from bill_ledger.api import create_app
from bill_ledger.config import get_settings


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().app.debug_mode,
    )
