"""
Upload AI backend built with FastAPI, exposing
- a prompt template listing endpoint,
- an .mp3 upload endpoint,
- a transcription endpoint backed by OpenAI Whisper,
- and a completion endpoint that streams an OpenAI chat completion
built from a stored transcription.
"""

__version__ = "0.1.0"
