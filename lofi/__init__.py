"""
Lofi engine: slowed, filtered, compressed, reverberated and bit-crushed renditions
of a recording, driven live or rendered offline through one effect chain.
"""
