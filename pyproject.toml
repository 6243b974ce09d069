[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jsonsettings"
version = "0.1.0"
description = "Typed application settings stored in a JSON document, addressed by JSON pointers, with change signals."
requires-python = ">=3.10"
dependencies = []
keywords = ["settings", "configuration", "json", "json-pointer", "signals"]
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
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["jsonsettings"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
