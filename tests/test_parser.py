"""Tests for pactree output parsing."""

from __future__ import annotations

from pacdeps.core.parser import (
    DependencyListing,
    ListingEntry,
    classify_line,
    parse_closure_listing,
    parse_listing,
)


FORWARD_LISTING = """\
dbus-c++
├─dbus
├─gcc-libs
├─glib2>=2.76
├─libunwind (optional)
└─expat (optional) [unresolvable]
"""

REVERSE_LISTING = """\
glibc
├─bash
├─coreutils
├─glibc
└─python (optional)
"""


class TestClassifyLine:
    """Tests for classify_line."""

    def test_blank_line(self) -> None:
        assert classify_line("", "pkg") is None
        assert classify_line("   ", "pkg") is None

    def test_self_line_is_skipped(self) -> None:
        assert classify_line("dbus-c++", "dbus-c++") is None

    def test_self_line_with_decoration_is_skipped(self) -> None:
        assert classify_line("└─dbus-c++", "dbus-c++") is None

    def test_mandatory(self) -> None:
        entry = classify_line("├─dbus", "dbus-c++")
        assert entry == ListingEntry(name="dbus", optional=False, unresolvable=False)

    def test_nested_decoration(self) -> None:
        entry = classify_line("│ └─zlib", "pkg")
        assert entry is not None
        assert entry.name == "zlib"

    def test_version_constraint_stripped(self) -> None:
        entry = classify_line("├─glib2>=2.76", "pkg")
        assert entry is not None
        assert entry.name == "glib2"

    def test_equals_constraint_stripped(self) -> None:
        entry = classify_line("├─libfoo=1.0-1", "pkg")
        assert entry is not None
        assert entry.name == "libfoo"

    def test_provides_text_dropped(self) -> None:
        entry = classify_line("├─sh provides bash", "pkg")
        assert entry is not None
        assert entry.name == "sh"

    def test_optional(self) -> None:
        entry = classify_line("├─libunwind (optional)", "pkg")
        assert entry is not None
        assert entry.name == "libunwind"
        assert entry.optional is True

    def test_optional_unresolvable_gets_marker(self) -> None:
        entry = classify_line("└─expat (optional) [unresolvable]", "pkg")
        assert entry is not None
        assert entry.name == "expat*"
        assert entry.optional is True
        assert entry.unresolvable is True

    def test_mandatory_unresolvable_keeps_name(self) -> None:
        entry = classify_line("└─ghost [unresolvable]", "pkg")
        assert entry is not None
        assert entry.name == "ghost"
        assert entry.optional is False


class TestParseListing:
    """Tests for parse_listing."""

    def test_forward_listing(self) -> None:
        listing = parse_listing(FORWARD_LISTING, "dbus-c++")
        assert listing.mandatory == ("dbus", "gcc-libs", "glib2")
        assert listing.optional == ("expat*", "libunwind")

    def test_self_reference_excluded(self) -> None:
        listing = parse_listing(REVERSE_LISTING, "glibc")
        assert "glibc" not in listing.mandatory
        assert listing.mandatory == ("bash", "coreutils")
        assert listing.optional == ("python",)

    def test_empty_text(self) -> None:
        assert parse_listing("", "pkg") == DependencyListing()

    def test_only_root_line(self) -> None:
        assert parse_listing("pkg\n", "pkg") == DependencyListing()

    def test_duplicates_collapsed(self) -> None:
        text = "pkg\n├─a\n├─a\n└─b\n"
        listing = parse_listing(text, "pkg")
        assert listing.mandatory == ("a", "b")

    def test_output_sorted(self) -> None:
        text = "pkg\n├─zeta\n├─alpha\n└─mid\n"
        assert parse_listing(text, "pkg").mandatory == ("alpha", "mid", "zeta")


class TestParseClosureListing:
    """Tests for parse_closure_listing."""

    def test_keeps_root_and_merges_optional(self) -> None:
        text = """\
firefox
├─gtk3
│ └─glib2
├─libpulse (optional)
└─ghost (optional) [unresolvable]
"""
        assert parse_closure_listing(text) == {"firefox", "gtk3", "glib2", "libpulse"}

    def test_provides_split(self) -> None:
        text = "pkg\n└─libgl provides mesa\n"
        assert parse_closure_listing(text) == {"pkg", "libgl"}

    def test_empty(self) -> None:
        assert parse_closure_listing("") == set()
