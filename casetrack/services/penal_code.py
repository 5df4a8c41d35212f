"""
Static penal-code catalog used for charge lookup and autocomplete.
"""

from typing import List, Optional

from casetrack.models.entities import PenalCodeItem

PENAL_CODE: List[PenalCodeItem] = [
    PenalCodeItem(123, "Murder", description="Intentionally killing another person"),
    PenalCodeItem(
        134,
        "Intentional infliction of bodily harm",
        description="Intentionally injuring or harming the health of another person",
    ),
    PenalCodeItem(141, "Rape", description="Sexual intercourse by force or threat of force"),
    PenalCodeItem(168, "Robbery", description="Using or threatening force to appropriate property"),
    PenalCodeItem(169, "Kidnapping for ransom", description="Seizing a person to appropriate property"),
    PenalCodeItem(170, "Extortion", description="Threatening force or using intimidation to obtain property"),
    PenalCodeItem(171, "Snatching of property"),
    PenalCodeItem(172, "Open appropriation of property"),
    PenalCodeItem(173, "Theft of property", description="Secretly taking property belonging to another person"),
    PenalCodeItem(174, "Fraud", description="Appropriating property by deception"),
    PenalCodeItem(175, "Abuse of trust to appropriate property"),
    PenalCodeItem(178, "Destruction or deliberate damage of property"),
    PenalCodeItem(
        249, "Illegal storage of narcotic substances", description="Possessing narcotics without authorisation"
    ),
    PenalCodeItem(250, "Illegal transport of narcotic substances"),
    PenalCodeItem(251, "Illegal trading in narcotic substances"),
    PenalCodeItem(255, "Organising illegal use of narcotic substances"),
    PenalCodeItem(260, "Violation of regulations on road traffic", description="Causing death or injury while driving"),
    PenalCodeItem(
        260,
        "Violation of regulations on road traffic",
        clause=2,
        description="Driving under the influence of alcohol or drugs",
    ),
    PenalCodeItem(318, "Disturbing public order"),
    PenalCodeItem(321, "Gambling"),
    PenalCodeItem(322, "Organising gambling or running a gambling den"),
    PenalCodeItem(353, "Embezzlement of property"),
    PenalCodeItem(354, "Taking bribes"),
    PenalCodeItem(364, "Offering bribes"),
]


def format_penal_code_display(item: PenalCodeItem) -> str:
    """``Article 173 - Theft of property``, or ``Article 260(2) - ...`` with a clause"""
    article = f"Article {item.article}"
    if item.clause is not None:
        article += f"({item.clause})"
    return f"{article} - {item.title}"


def search_penal_code(query: Optional[str], limit: int = 10) -> List[PenalCodeItem]:
    """
    Case-insensitive match over article number, title and description.

    A blank query returns the head of the catalog so autocomplete has
    something to show before the user types.
    """
    if not query or not query.strip():
        return PENAL_CODE[:limit]

    needle = query.strip().casefold()
    matches = []
    for item in PENAL_CODE:
        haystacks = (str(item.article), item.title.casefold(), item.description.casefold())
        if any(needle in value for value in haystacks) or needle in format_penal_code_display(item).casefold():
            matches.append(item)
            if len(matches) >= limit:
                break
    return matches
