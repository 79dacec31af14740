from lofi.export.wav import encode_wav, save_wav

__all__ = ["encode_wav", "save_wav"]
