"""CrossQA — BDD test harness for web and mobile applications."""

__version__ = "0.3.0"
