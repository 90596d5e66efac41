"""lidcam -- Record a short clip when a laptop lid is opened.

Watches the lid sensor, and on an open that follows a close records a
few seconds of video from an attached camera, optionally forwarding the
clip to a Telegram chat. Ships a console front end and a desktop GUI
over the same monitor.
"""

__version__ = "0.1.0"
