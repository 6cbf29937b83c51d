"""
Wrapper script for running the server without the CLI.

Used by profilers that need a plain Python entry point.
"""

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("signal_relay:application", factory=True, host="0.0.0.0", port=8000)
