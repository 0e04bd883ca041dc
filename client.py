#!/usr/bin/env python3
"""
Consumer side of the numbers demo.

Requests /numbers and reads the JSON array line by line as it arrives,
so the client stays flat in memory just like the server.
"""

import asyncio
import json
import logging
import sys
from typing import Any, AsyncIterator, List, Optional

import aiohttp

from utils import setup_logging

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"


def parse_array_line(line: str) -> Optional[Any]:
    """Decode one line of a one-element-per-line JSON array.

    Returns None for the bracket and blank lines.
    """
    text = line.strip()
    if text.endswith(","):
        text = text[:-1].rstrip()
    if text in ("", "[", "]"):
        return None
    return json.loads(text)


async def stream_numbers(
    session: aiohttp.ClientSession,
    base_url: str = DEFAULT_BASE_URL,
    how_many: int = 1000,
) -> AsyncIterator[Any]:
    """Yield the numbers from /numbers as they come off the wire"""
    async with session.get(f"{base_url}/numbers", params={"how_many": how_many}) as response:
        response.raise_for_status()
        async for raw in response.content:
            value = parse_array_line(raw.decode("utf-8"))
            if value is not None:
                yield value


async def fetch_numbers(base_url: str = DEFAULT_BASE_URL, how_many: int = 1000) -> List[Any]:
    """Collect the whole response into a list (for small requests)"""
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=300)) as session:
        return [n async for n in stream_numbers(session, base_url, how_many)]


async def print_numbers(base_url: str = DEFAULT_BASE_URL, how_many: int = 1000) -> int:
    """Print every number as it arrives; returns how many were printed"""
    printed = 0
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None)) as session:
        async for number in stream_numbers(session, base_url, how_many):
            print(number)
            printed += 1
    logger.info(f"Received {printed} numbers from {base_url}")
    return printed


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    how_many = int(args[0]) if args else 1_000_000
    base_url = args[1] if len(args) > 1 else DEFAULT_BASE_URL
    setup_logging()
    asyncio.run(print_numbers(base_url, how_many))
    return 0


if __name__ == "__main__":
    sys.exit(main())
