[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "playbook-dispatcher"
version = "0.1.0"
description = "Dispatch Ansible playbook runs to connected hosts and Satellite instances, and track their status"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["ansible", "playbook", "dispatch", "satellite", "rhc", "cloud-connector"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["playbook_dispatcher"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
