#!/usr/bin/env python3
"""
Startup script for the Roaster's Choice service.
Run with: python run.py
"""
import os
import sys
import uvicorn
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Add app directory to path
sys.path.insert(0, str(Path(__file__).parent))

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    print("=" * 80)
    print("Roaster's Choice Service")
    print("=" * 80)
    print("\nStarting server...")
    print(f"Webhook: POST http://localhost:{port}/api/roasters-choice")
    print(f"Health Check: http://localhost:{port}/api/v1/health")
    print("\nPress CTRL+C to stop\n")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("RELOAD", "0") == "1",
        log_level="info"
    )
