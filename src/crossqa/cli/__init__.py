"""CrossQA command-line interface."""
