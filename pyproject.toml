[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "soundremote"
version = "0.1.0"
description = "Audio capture pipeline that negotiates formats, resamples PCM and fans frames out to clients"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["audio", "capture", "pcm", "resampling", "streaming", "wave-format"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Capture/Recording",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["soundremote"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
