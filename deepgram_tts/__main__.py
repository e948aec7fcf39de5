"""
Entry point for the deepgram_tts package when run as a module.

This allows the package to be executed directly with:
    python -m deepgram_tts
"""

from .cli import main

if __name__ == "__main__":
    main()
