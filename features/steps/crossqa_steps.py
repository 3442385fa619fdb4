# Registers the packaged step definitions with behave.
from crossqa.steps import mobile_steps, web_steps  # noqa: F401
