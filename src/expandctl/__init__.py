"""expandctl — materialize macro expansions into standalone compilable sources."""

__version__ = "0.1.0"
