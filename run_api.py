#!/usr/bin/env python3
"""
Run the Incident Triage API.
Set OPENAI_API_KEY in environment (or .env) to enable the similarity oracle and severity
analysis; without it, duplicates use heuristic scores only and severity defaults to Medium.
"""
import os

from dotenv import load_dotenv
import uvicorn

load_dotenv()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("RELOAD", "0") == "1",
    )
