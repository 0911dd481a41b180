#!/usr/bin/env python3
"""
Main entry point for the Car Analysis API.
"""
import uvicorn
from car_analysis.config import APP_PORT

if __name__ == "__main__":
    print(f"🚀 Starting Car Analysis API on port {APP_PORT}")
    uvicorn.run(
        "car_analysis.api:app",
        host="0.0.0.0",
        port=APP_PORT,
        log_level="info"
    )
