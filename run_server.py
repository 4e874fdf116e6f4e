import argparse
import os

import uvicorn

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the TimeArc API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--dataset-url", help="Dataset loaded at startup (sets TIMEARC_DATASET_URL)")
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()

    if args.dataset_url:
        os.environ["TIMEARC_DATASET_URL"] = args.dataset_url

    print("Starting TimeArc API Server...")
    print(f"Docs available at: http://localhost:{args.port}/docs")

    uvicorn.run(
        "backend.api.server:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload
    )
