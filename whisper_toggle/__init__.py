"""
whisper-toggle: Hotkey-driven local dictation

Each hotkey press runs one short-lived invocation that starts or stops an
ffmpeg recording. Stopping hands the recording to a detached speech-to-text
step whose output is pasted into the focused application.
"""

__version__ = "0.1.0"
