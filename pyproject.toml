[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "watermill"
version = "1.2.0"
description = "Building blocks for message-driven applications: structured logging, message interfaces, retrying and forwarding publishers, and a subscriber multiplier."
requires-python = ">=3.10"
keywords = [
    "messaging",
    "pubsub",
    "events",
    "event-driven",
    "logging",
    "retry",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "pyyaml",
    "termcolor",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
watermill-validate-examples = "watermill.validate_examples:main"
watermill-consolidate-gomods = "watermill.consolidate_gomods:main"
watermill-update-examples-deps = "watermill.update_examples_deps:main"

[tool.hatch.build.targets.wheel]
packages = ["watermill"]

[tool.hatch.build.targets.sdist]
include = ["watermill", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
