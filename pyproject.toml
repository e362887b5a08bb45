[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "backend-scaffold"
version = "1.0.0"
description = "A small backend scaffold: structured application errors, a trace-aware logger and Connect-style user and post services over HTTP."
requires-python = ">=3.10"
dependencies = []
keywords = ["backend", "scaffold", "connect", "rpc", "logging", "errors", "http"]
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
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
backend-scaffold-api = "backend_scaffold.server:main"

[tool.hatch.build.targets.wheel]
packages = ["backend_scaffold"]

[tool.pytest.ini_options]
testpaths = ["tests"]
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
