[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "agroflash"
version = "0.1.0"
description = "WSGI building blocks for a spaced-repetition flashcard service: domain models, configuration, CSV card import, middleware and SQL migrations."
requires-python = ">=3.10"
keywords = [
    "flashcards",
    "spaced-repetition",
    "wsgi",
    "middleware",
    "csrf",
    "cors",
    "rate-limiting",
    "jwt",
    "csv-import",
    "migrations",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
    "Typing :: Typed",
]
dependencies = [
    "werkzeug>=3.0",
    "pyjwt>=2.8",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
]

[tool.hatch.build.targets.wheel]
packages = ["agroflash"]

[tool.hatch.build.targets.sdist]
include = [
    "agroflash",
    "tests",
]

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
no_implicit_optional = true
