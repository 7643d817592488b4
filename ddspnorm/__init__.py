"""ddspnorm - feature alignment for DDSP-style neural synthesis."""

__version__ = "0.1.0"
