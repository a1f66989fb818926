"""
Mandatory credit myths.

A question matching any pattern below is answered with the canonical
correction and never sent to the generator. Myths are checked in list order
and every matching myth is reported.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cardpilot.ask.answer import MythCheck, MythCorrection


@dataclass(frozen=True)
class CreditMyth:
    id: str
    patterns: Tuple[re.Pattern, ...]
    correction: str
    why_it_matters: str
    severity: str

    def matches(self, question: str) -> bool:
        return any(p.search(question) for p in self.patterns)


def _myth(myth_id: str, patterns: List[str], correction: str, why: str, severity: str) -> CreditMyth:
    return CreditMyth(
        id=myth_id,
        patterns=tuple(re.compile(p, re.IGNORECASE) for p in patterns),
        correction=correction,
        why_it_matters=why,
        severity=severity,
    )


CREDIT_MYTHS = [
    _myth(
        "MYTH_0_UTIL_IS_BEST",
        [
            r"0%?\s*utilization\s*(is\s*)?(best|optimal|ideal)",
            r"keep\s*(my\s*)?utilization\s*(at\s*)?0",
            r"zero\s*utilization\s*(is\s*)?(good|best|better)",
            r"should\s*(i\s*)?have\s*0\s*utilization",
        ],
        "0% utilization is NOT optimal. Lenders want to see responsible use. "
        "1-9% reported utilization typically scores best.",
        "Zero utilization suggests inactive accounts. Scoring models reward low but non-zero usage "
        "that demonstrates responsible borrowing behavior.",
        "medium",
    ),
    _myth(
        "MYTH_PAY_BY_DUE_DATE_AFFECTS_UTIL",
        [
            r"pay\s*(by|before)\s*(the\s*)?due\s*date\s*(to\s*)?(lower|reduce|improve)\s*(my\s*)?utilization",
            r"due\s*date\s*(payment\s*)?(affect|impact|change)\s*(my\s*)?utilization",
            r"paying\s*(on\s*)?due\s*date\s*(helps?|lowers?)\s*utilization",
        ],
        "Utilization is reported on statement CLOSE date, not due date. "
        "Pay BEFORE statement closes to lower reported utilization.",
        "Most issuers report balances to bureaus when the statement generates, not when payment is due. "
        "Paying by due date avoids interest but does not affect the utilization reported to bureaus.",
        "high",
    ),
    _myth(
        "MYTH_CARRYING_BALANCE_BUILDS_SCORE",
        [
            r"carry(ing)?\s*(a\s*)?balance\s*(to\s*)?(build|improve|help)\s*(my\s*)?(credit|score)",
            r"need\s*(to\s*)?carry\s*(a\s*)?balance",
            r"keep(ing)?\s*(a\s*)?balance\s*(help|build|improve)",
            r"balance\s*(to\s*)?build\s*credit",
            r"paying\s*interest\s*(helps?|builds?)\s*(credit|score)",
        ],
        "You do NOT need to carry a balance. Pay in full every month. Interest payments do not help your score.",
        "This myth costs consumers billions in unnecessary interest. Payment history (on-time) matters. "
        "Carrying a balance only increases utilization and costs you money.",
        "high",
    ),
    _myth(
        "MYTH_CREDIT_CHECK_HURTS_ALWAYS",
        [
            r"checking\s*(my\s*)?(own\s*)?credit\s*(score\s*)?(hurt|damage|lower|bad)",
            r"soft\s*pull\s*(hurt|damage|lower|affect)\s*(my\s*)?score",
            r"every\s*credit\s*check\s*(hurt|damage)",
            r"checking\s*(credit|score)\s*(is\s*)?bad",
        ],
        "Checking your own credit is a SOFT pull. It has zero effect on your score. "
        "Only HARD inquiries (applications) can affect your score.",
        "Fear of checking credit leads to ignorance about your own financial health. "
        "Soft pulls are invisible to scoring models.",
        "medium",
    ),
    _myth(
        "MYTH_CLOSING_DATE_IS_DUE_DATE",
        [
            r"statement\s*(close|closing)\s*(date\s*)?(is\s*)?(the\s*)?(same\s*as\s*)?(due\s*date|when.*pay)",
            r"due\s*date\s*(is\s*)?(when\s*)?(statement\s*)?(close|closes)",
            r"close\s*date\s*(and\s*)?due\s*date\s*(are\s*)?(the\s*)?same",
        ],
        "Statement close date and due date are different. Close date is when your statement generates. "
        "Due date is ~21-25 days later when payment is due.",
        "Confusing these dates causes missed payment timing for utilization optimization and can lead "
        "to unnecessary interest charges.",
        "high",
    ),
    _myth(
        "MYTH_PAYING_INTEREST_HELPS_APPROVALS",
        [
            r"paying\s*interest\s*(help|improve|increase)\s*(my\s*)?(approval|chance|odds)",
            r"interest\s*(payment|charge)\s*(show|prove)\s*(i\s*am|i'm)\s*(responsible|good)",
            r"bank\s*(like|want|prefer)\s*(me\s*to\s*)?pay\s*interest",
        ],
        "Paying interest does NOT improve approval odds. Banks profit from interest but scoring models do not reward it.",
        "This myth benefits lenders, not you. Your creditworthiness is determined by payment history, "
        "utilization and account age, not by how much interest you pay.",
        "high",
    ),
    _myth(
        "MYTH_BNPL_HAS_NO_CREDIT_IMPACT",
        [
            r"bnpl\s*(has\s*)?(no|zero|doesn't|does\s*not)\s*(affect|impact|hurt)\s*(my\s*)?(credit|score)",
            r"buy\s*now\s*pay\s*later\s*(doesn't|does\s*not|no)\s*(affect|impact|show)",
            r"(affirm|klarna|afterpay)\s*(doesn't|does\s*not)\s*(report|affect|impact)",
            r"bnpl\s*(is\s*)?(harmless|safe\s*for\s*my\s*credit)",
        ],
        "Many BNPL providers now report to credit bureaus. Missed payments CAN hurt your score. "
        "Late BNPL can go to collections.",
        "BNPL is increasingly reported to bureaus. A missed BNPL payment can result in collection accounts "
        "that severely damage credit for years.",
        "high",
    ),
    _myth(
        "MYTH_MINIMUM_PAYMENT_AVOIDS_INTEREST",
        [
            r"minimum\s*(payment)?\s*(to\s*)?(avoid|prevent|stop)\s*(paying\s*)?interest",
            r"(pay(ing)?\s*)?(the\s*)?minimum\s*(payment\s*)?(means|is)\s*(no|zero)\s*interest",
        ],
        "The minimum payment does NOT avoid interest. Interest accrues on any unpaid statement balance. "
        "Pay the statement balance in full to avoid interest.",
        "Paying only the minimum keeps you on time but the remaining balance compounds at the card's APR "
        "every month.",
        "high",
    ),
    _myth(
        "MYTH_MORE_CARDS_ALWAYS_HELP",
        [
            r"more\s*cards\s*(always\s*)?(help|improve|boost|raise)",
            r"(open|get)(ing)?\s*(lots\s*of|many|more)\s*cards\s*(to\s*)?(help|improve|boost|raise)",
        ],
        "More cards do not always help. Each application adds a hard inquiry and lowers your average "
        "account age; extra cards only help if you use them responsibly.",
        "Opening cards quickly can drop your score in the short term and trigger issuer application rules.",
        "medium",
    ),
    _myth(
        "MYTH_CLOSING_CARDS_IS_NEUTRAL",
        [
            r"clos(e|ing)\s*(an?\s*)?(old|unused)?\s*cards?\s*(doesn't|does\s*not|won't|will\s*not)\s*(hurt|affect|matter)",
            r"clos(e|ing)\s*(an?\s*)?(old|unused)?\s*cards?\s*(is\s*)?(neutral|harmless|fine)",
        ],
        "Closing a card is not neutral. It reduces your total available credit, which raises utilization, "
        "and can eventually shorten your credit history.",
        "Keeping no-fee cards open, even if lightly used, usually protects your score.",
        "high",
    ),
]


def detect_myths(question: str, myths: Optional[List[CreditMyth]] = None) -> MythCheck:
    """Return every myth the question matches, in list order."""
    corrections = []
    for myth in (CREDIT_MYTHS if myths is None else myths):
        if myth.matches(question):
            corrections.append(MythCorrection(
                myth_id=myth.id,
                correction=myth.correction,
                why_it_matters=myth.why_it_matters,
            ))
    return MythCheck(
        detected=bool(corrections),
        myth_ids=[c.myth_id for c in corrections],
        corrections=corrections,
    )


def get_myth_by_id(myth_id: str) -> Optional[CreditMyth]:
    for myth in CREDIT_MYTHS:
        if myth.id == myth_id:
            return myth
    return None
