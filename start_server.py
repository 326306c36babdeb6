#!/usr/bin/env python3
"""
Run the Rollout Ready API under uvicorn
Settings come from the environment (.env), command-line flags override them.
"""

import argparse
import os

import uvicorn
from dotenv import load_dotenv


def parse_args(argv=None):
    load_dotenv()
    parser = argparse.ArgumentParser(description="Start the Rollout Ready API server")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument(
        "--no-reload",
        dest="reload",
        action="store_false",
        default=os.getenv("RELOAD", "true").lower() == "true",
        help="disable auto-reload on code changes",
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "info").lower())
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    print("🚀 Rollout Ready API")
    print(f"   Listening on http://{args.host}:{args.port} (reload={'on' if args.reload else 'off'})")
    print(f"   Docs: http://{args.host}:{args.port}/docs")

    uvicorn.run(
        "rollout_ready.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
