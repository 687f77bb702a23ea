"""State layer.

Everything that must survive a process restart (watermarks, salt,
location references, the previous contact snapshot) goes through the
key-value contract defined here.
"""
