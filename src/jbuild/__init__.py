"""jbuild - incremental compilation core for JVM source trees."""

__version__ = "0.1.0"
