# backend/traineedb/serve.py
"""
Run the API under uvicorn: `python -m traineedb.serve` from backend/.

TLS is expected to terminate at the reverse proxy; HOST, PORT, RELOAD,
LOG_LEVEL and FORWARDED_ALLOW_IPS are read from the environment.
"""

import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "traineedb.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "").lower() in {"1", "true", "yes"},
        log_level=os.getenv("LOG_LEVEL", "info"),
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1"),
    )


if __name__ == "__main__":
    main()
