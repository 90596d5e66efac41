"""Desktop GUI front end for lidcam (requires the ``gui`` extra)."""
