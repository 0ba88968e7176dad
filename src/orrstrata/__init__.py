"""orrstrata - response-rate stratified survival outcome reports."""

__version__ = "0.1.0"
