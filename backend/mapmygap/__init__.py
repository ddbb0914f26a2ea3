"""MapMyGap compliance gap analysis service."""
