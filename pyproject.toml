[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "turborabbit"
version = "1.0.0"
description = "Connection and channel pooling, consumers and message models for RabbitMQ"
requires-python = ">=3.10"
dependencies = [
    "pika",
]
keywords = ["rabbitmq", "amqp", "pool", "consumer", "messaging"]
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
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["turborabbit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
