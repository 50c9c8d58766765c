[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "acsolab"
version = "0.1.0"
description = "Course tools: a Unix V6 disk image reader, a small ARM instruction simulator and a typed string list"
requires-python = ">=3.10"
dependencies = []
keywords = ["unix-v6", "filesystem", "disk-image", "arm", "simulator", "education"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Education",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
diskimageaccess = "acsolab.diskimageaccess:main"
armsim = "acsolab.armshell:main"

[tool.hatch.build.targets.wheel]
packages = ["acsolab"]

[tool.pytest.ini_options]
addopts = "-ra"
