from __future__ import annotations

import importlib.metadata as importlib_metadata
import json
import os
import platform
import sys
from pathlib import Path
from typing import Any

import pytest

from benchpress import DictLoader, Environment

BASE_DIR = Path(__file__).resolve().parent
BENCHMARK_OUTPUT_DIR = BASE_DIR.parent / ".benchmarks"


TEMPLATES = {
    "minimal": "Hello {name}!",
    "small": (
        "<h1>{title}</h1>\n"
        "<ul>\n"
        "{{{ each items }}}  <li>{@index}: {@value}</li>\n{{{ end }}}"
        "</ul>\n"
    ),
    "medium": (
        "<header>{{{ import header }}}</header>\n"
        "{{{ each products as product }}}"
        '<div class="product{{{ if product.sale }}} sale{{{ end }}}">\n'
        "  <h2>{product.name}</h2>\n"
        "  <p>{product.description}</p>\n"
        "  <span>{product.price}</span>\n"
        "  {{{ each product.tags }}}<em>{@value}</em>{{{ end }}}\n"
        "</div>\n"
        "{{{ else }}}<p>No products</p>{{{ end }}}"
        "<footer>{join(categories, \" | \")}</footer>\n"
    ),
    "large": (
        "<table>\n"
        "{{{ each rows }}}<tr>{{{ each cells }}}<td>{@value}</td>{{{ end }}}</tr>\n{{{ end }}}"
        "</table>\n"
    ),
    "header": "<nav>{{{ each nav }}}<a href=\"{url}\">{label}</a>{{{ end }}}</nav>",
}


def build_small_context() -> dict[str, Any]:
    return {"title": "Small", "items": [f"item <{i}>" for i in range(5)]}


def build_medium_context() -> dict[str, Any]:
    """Medium context: 100 products with nested tags."""
    return {
        "nav": [{"url": f"/section/{i}", "label": f"Section {i}"} for i in range(8)],
        "products": [
            {
                "name": f"Product {i}",
                "description": f"Description for product {i} & friends",
                "price": i * 1.5,
                "sale": i % 3 == 0,
                "tags": [f"tag{j}" for j in range(i % 4)],
            }
            for i in range(100)
        ],
        "categories": [f"Category {i}" for i in range(10)],
    }


def build_large_context() -> dict[str, Any]:
    """Large context: a 1000 x 10 table."""
    return {"rows": [{"cells": [r * 10 + c for c in range(10)]} for r in range(1000)]}


def _version(dist: str) -> str:
    try:
        return importlib_metadata.version(dist)
    except importlib_metadata.PackageNotFoundError:
        return "unknown"


def collect_environment_metadata() -> dict[str, object]:
    """Capture reproducibility metadata for each benchmark run."""
    return {
        "python": {
            "version": platform.python_version(),
            "implementation": platform.python_implementation(),
            "executable": sys.executable,
        },
        "os": {
            "system": platform.system(),
            "release": platform.release(),
            "machine": platform.machine(),
        },
        "cpu": {
            "processor": platform.processor(),
            "count": os.cpu_count(),
        },
        "benchpress": _version("benchpress"),
    }


@pytest.fixture(scope="session")
def environment_metadata() -> dict[str, object]:
    """Write environment metadata to .benchmarks for ingestion."""
    metadata = collect_environment_metadata()
    BENCHMARK_OUTPUT_DIR.mkdir(exist_ok=True)
    (BENCHMARK_OUTPUT_DIR / "environment.json").write_text(json.dumps(metadata, indent=2))
    return metadata


@pytest.fixture(scope="session")
def templates() -> dict[str, str]:
    return TEMPLATES


@pytest.fixture(scope="session")
def bench_env() -> Environment:
    return Environment(loader=DictLoader(TEMPLATES))


@pytest.fixture(scope="session")
def small_context() -> dict[str, Any]:
    return build_small_context()


@pytest.fixture(scope="session")
def medium_context() -> dict[str, Any]:
    return build_medium_context()


@pytest.fixture(scope="session")
def large_context() -> dict[str, Any]:
    return build_large_context()
