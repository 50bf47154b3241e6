import argparse
import os
import sys
from pathlib import Path

# Run from anywhere: the portal imports `app` and `sq_portal` relative to this file.
script_directory = Path(__file__).resolve().parent
if str(script_directory) not in sys.path:
    sys.path.append(str(script_directory))

from dotenv import load_dotenv
import uvicorn

from sq_portal.secrets import env_file_path, setup_secrets


def _parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Run the SQ upload and announcement portal.")
    ap.add_argument("--env", type=str, default="dev", help="Loads secrets/env.<env>.")
    ap.add_argument("--host", type=str, default="0.0.0.0")
    ap.add_argument("--port", type=int, default=int(os.getenv("PORT", "8086")))
    ap.add_argument("--log-level", type=str, default="info")
    return ap.parse_args(argv)


if __name__ == "__main__":
    args = _parse_args()

    # Cloud Run delivers the dotenv payload in ENV_FILE; write it where load_dotenv looks.
    setup_secrets(args.env)

    env_path = env_file_path(args.env)
    if not env_path.exists():
        raise FileNotFoundError(f"Could not find an environment file for '{args.env}' at {env_path}")
    load_dotenv(env_path, override=True)

    # Imported last: building the app reads SQ_* settings from the environment loaded above.
    from app import app
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level)
