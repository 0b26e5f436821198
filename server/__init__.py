"""HTTP service around the ontosketch compiler: document store, derived views, change stream."""
