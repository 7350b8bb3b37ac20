[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tgstack"
version = "0.1.0"
description = "Link, check and run stacks of interdependent Terraform modules in dependency order"
requires-python = ">=3.10"
dependencies = []
keywords = ["terraform", "terragrunt", "dependencies", "stack", "infrastructure"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tgstack"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
