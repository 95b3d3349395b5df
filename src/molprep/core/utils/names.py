"""
Helpers for the fixed-width atom and residue names used in PDB files.

Atom names occupy four columns with the element symbol right-aligned in
the first two (`` CA ``, ``HD21``); residue names are left-aligned in four
columns (``ALA `` or ``CYS2``). All lookups compare these padded forms.
"""

from typing import Tuple

NAME_WIDTH = 4
PREVIOUS_RESIDUE_MARK = "-"
RAW_NAME_MARK = "<"


def format_atom_name(name: str) -> str:
    """
    Pad an atom name to the four PDB columns.

    Names shorter than four characters start in the second column, four
    character names fill all columns.

    Raises:
        ValueError: If the name is longer than four characters
    """
    if len(name) > NAME_WIDTH:
        raise ValueError(f"atom name {name} too long")
    if not name:
        return ""
    if len(name) == NAME_WIDTH:
        return name
    return (" " + name).ljust(NAME_WIDTH)


def format_raw_atom_name(token: str) -> str:
    """Take a ``<``-prefixed name verbatim, turning non-alphanumerics into blanks."""
    if token.startswith(RAW_NAME_MARK):
        token = token[1:]
    chars = [c if c.isalnum() else " " for c in token[:NAME_WIDTH]]
    return "".join(chars).ljust(NAME_WIDTH)


def parse_atom_token(token: str) -> str:
    """Format a topology file atom token, honouring the ``<`` raw prefix."""
    if token.startswith(RAW_NAME_MARK):
        return format_raw_atom_name(token)
    return format_atom_name(token)


def format_residue_name(name: str) -> str:
    """
    Normalize a residue name to the four-column lookup key.

    One and two character names are right-aligned in the first three
    columns, three character names get a trailing blank.

    Raises:
        ValueError: If the name is empty or longer than four characters
    """
    name = name.strip()
    if not name or len(name) > NAME_WIDTH:
        raise ValueError(f"invalid residue name '{name}'")
    if len(name) == NAME_WIDTH:
        return name
    return name.rjust(3) + " "


def split_previous_reference(name: str) -> Tuple[str, bool]:
    """
    Strip the previous-residue mark from a formatted control atom name.

    Returns:
        The plain atom name and whether it refers to the previous residue
    """
    if PREVIOUS_RESIDUE_MARK not in name:
        return name, False
    if name[0] == PREVIOUS_RESIDUE_MARK:
        return " " + name[1:], True
    if name[1] == PREVIOUS_RESIDUE_MARK:
        return name[0] + name[2:] + " ", True
    return name, True


def numbered_hydrogen_name(base: str, number: int) -> str:
    """
    Append a digit to a hydrogen base name within four columns.

    If the last column is taken the name is shifted left by one first; the
    digit then goes to the third column if blank, otherwise the fourth.
    """
    chars = list(base.ljust(NAME_WIDTH)[:NAME_WIDTH])
    digit = str(number)
    if chars[3] != " ":
        chars[0:3] = chars[1:4]
        chars[3] = " "
    if chars[2] == " ":
        chars[2] = digit
    elif chars[3] == " ":
        chars[3] = digit
    return "".join(chars)


def is_hydrogen(element: str, name: str) -> bool:
    """
    Decide whether an atom is a hydrogen.

    The element column wins when filled in. Without it the PDB naming
    convention is used: a name starting with ``H`` or with a digit
    followed by ``H``.
    """
    element = element.strip().upper()
    if element:
        return element == "H"
    stripped = name.lstrip()
    if not stripped:
        return False
    return stripped[0] == "H" or (
        len(stripped) > 1 and stripped[0].isdigit() and stripped[1] == "H"
    )
