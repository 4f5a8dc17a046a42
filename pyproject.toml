[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sewerfog"
version = "0.1.0"
description = "Sewer fats, oils and grease (FOG) monitoring: sensor packets, impact scoring, overflow risk and reach summaries"
requires-python = ">=3.10"
dependencies = []
keywords = ["sewer", "fog", "grease", "hydrology", "overflow", "monitoring", "telemetry"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Hydrology",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sewerfog-gateway = "sewerfog.gateway:main"
sewerfog-node = "sewerfog.node:main"
sewerfog-chat = "sewerfog.chat_server:main"

[tool.hatch.build.targets.wheel]
packages = ["sewerfog"]

[tool.pytest.ini_options]
addopts = "-ra"
