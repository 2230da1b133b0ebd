"""
Wedjat — Gesture-driven scanning keyboard for assistive communication.

Binary gesture (upward gaze or held key) → scanning menus → text, speech,
call bell and e-mail. Designed for users with very limited motor ability.
"""

__version__ = "1.0.0"
__author__ = "Wedjat Team"
