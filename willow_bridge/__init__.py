"""Willow inference server bridge: PCM uploads framed as WAVE and sent to STT."""
