"""
Live playback: transport clock and the session facade pulled by an output callback.
"""
