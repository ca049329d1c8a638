"""Long-wave radio time signal encoders and a Raspberry Pi GPIO clock transmitter."""

__version__ = "0.1.0"
__all__ = ["services", "clock", "cli"]