# SPDX-License-Identifier: BSD-3-Clause

"""
Text encoding helpers.

The fixture loader decodes documents as UTF-8; these functions detect
byte order marks and compare declared encodings to the one in use.
"""

from __future__ import annotations

from codecs import (
    BOM_UTF8,
    BOM_UTF16_BE,
    BOM_UTF16_LE,
    BOM_UTF32_BE,
    BOM_UTF32_LE,
    lookup as lookup_codec,
)
from logging import Logger, LoggerAdapter

_BOMS = (
    # UTF-32 must come first: its little endian BOM starts with
    # the UTF-16 little endian BOM.
    (BOM_UTF32_LE, "utf-32"),
    (BOM_UTF32_BE, "utf-32"),
    (BOM_UTF8, "utf-8"),
    (BOM_UTF16_LE, "utf-16"),
    (BOM_UTF16_BE, "utf-16"),
)


def encoding_from_bom(data: bytes) -> str | None:
    """
    Look for a byte-order-marker at the start of the given C{bytes}.
    If found, return the encoding matching that BOM, otherwise return C{None}.
    """
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            return encoding
    return None


def standard_codec_name(name: str) -> str:
    """
    Map a Python codec name to the name IANA prefers.

    @param name:
        Text encoding name, in lower case.
    """
    if name.startswith("iso8859"):
        return "iso-8859" + name[7:]
    return {
        "ascii": "us-ascii",
        "euc_jp": "euc-jp",
        "euc_kr": "euc-kr",
    }.get(name, name)


def report_declared_encoding(
    declared: str,
    source: str,
    used_encoding: str,
    logger: Logger | LoggerAdapter,
) -> bool:
    """
    Compare an encoding declared in a document to the one it was
    actually decoded with.

    @param declared:
        Encoding name as written in the document.
    @param source:
        Description of where the declaration was found, used in messages.
    @param used_encoding:
        Standard name of the encoding the document was decoded with.
    @param logger:
        Disagreements are logged here as warnings; the use of
        a non-standard name for the right encoding is logged as info.
    @return:
        C{True} iff the declaration agrees with the encoding in use.
    """
    try:
        codec = lookup_codec(declared)
    except LookupError:
        logger.warning(
            '%s specifies encoding "%s", which is unknown to Python',
            source,
            declared,
        )
        return False

    std_name = standard_codec_name(codec.name)
    if std_name != used_encoding:
        logger.warning(
            '%s specifies encoding "%s", while actual encoding seems to be "%s"',
            source,
            declared,
            used_encoding,
        )
        return False
    if std_name != declared.lower():
        logger.info(
            '%s specifies encoding "%s", which is not the standard name "%s"',
            source,
            declared,
            used_encoding,
        )
    return True
