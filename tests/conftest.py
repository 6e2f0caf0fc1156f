"""Shared fixtures: a small on-disk corpus and the index built from it."""

from pathlib import Path

import pytest

from docweave.config import IndexConfig
from docweave.pipeline import IngestionPipeline
from docweave.query import QueryService

SEP = "<SEP>"

ASYNC_MD = f"""# Async IO in Python

Coroutines let a single thread juggle many sockets.

## Event loop

The event loop schedules coroutines.

```python
import asyncio
asyncio.run(main())
```

{SEP}

# Threads in Python

Threads share memory with each other.

## Thread pool

Use a thread pool executor for blocking work.

```Python
from concurrent.futures import ThreadPoolExecutor
```
"""

PROMISES_MD = """# Promises

A promise represents an eventual value.

## Event loop

The JavaScript event loop runs callbacks.

```javascript
await fetch(url)
```
"""

NOTES_TXT = "Plain note without headings\nsecond line of the note\n"


def write_corpus(root: Path) -> Path:
    (root / "python").mkdir(parents=True)
    (root / "javascript").mkdir()
    (root / "python" / "async.md").write_text(ASYNC_MD, encoding="utf-8")
    (root / "javascript" / "promises.md").write_text(PROMISES_MD, encoding="utf-8")
    (root / "notes.txt").write_text(NOTES_TXT, encoding="utf-8")
    return root


@pytest.fixture
def config() -> IndexConfig:
    return IndexConfig(separator=SEP, workers=1)


@pytest.fixture
def make_corpus(tmp_path):
    """Write a fresh copy of the sample corpus under tmp_path/<name>."""
    return lambda name="corpus": write_corpus(tmp_path / name)


@pytest.fixture
def corpus(make_corpus) -> Path:
    return make_corpus()


@pytest.fixture
def built(corpus, config):
    """(snapshot, report) for the sample corpus."""
    return IngestionPipeline(config).run(corpus)


@pytest.fixture
def snapshot(built):
    return built[0]


@pytest.fixture
def service(snapshot) -> QueryService:
    return QueryService(snapshot)
