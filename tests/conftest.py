from typing import Optional

import pytest

from sequence_engine.clients.llm import LanguageModel, ModelCallError


class ScriptedModel(LanguageModel):
    """Returns queued responses in order and records every call.

    A queued exception is raised instead of returned.
    """

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls: list[dict] = []

    async def complete(self, system: str, user: str, temperature: Optional[float] = None) -> str:
        self.calls.append({"system": system, "user": user, "temperature": temperature})
        if not self.responses:
            raise ModelCallError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def scripted_model():
    return ScriptedModel


RESEARCH_BRIEF = """Company
Helix Therapeutics

Research focus and disease area
- Solid tumors with a focus on immuno-oncology
- T cell engagers for colorectal cancer

Workflow or sample context
- FFPE biopsies from early clinical trials

Suggested Bruker instrument
Instrument: CosMx
Why this instrument: single-cell resolution in intact tissue

Outreach angle inputs
Likely pain / gap to reference:
- Limited ability to see where T cells sit relative to tumor cells
Recent trigger / pressure:
- Series B funding likely signals expansion of translational work
Concrete spatial advantage:
- Ability to map T cell to tumor contacts in FFPE biopsies
"""

LEAD_INTEL = "10/1/2025\tHelix Therapeutics Inc.\thelix.bio\tBoston, MA\tBiotech developing T cell engagers"


@pytest.fixture
def research_brief():
    return RESEARCH_BRIEF


@pytest.fixture
def lead_intel():
    return LEAD_INTEL


DRAFT_SEQUENCE = """Email 1
Subject: Seeing T cells in your biopsies

Hi {{first_name}},

It's hard to see where T cells sit relative to tumor cells in your colorectal biopsies.

CosMx resolves single cells in intact FFPE tissue.

Would it be worth meeting while I'm in Boston?

{{availability}}

Best,
Tim

Email 2
Subject: Following up on T cell engagers

Hi {{first_name}},

You may have missed my first note. Your Series B means more translational work.

{{availability}}

Best,
Tim

LinkedIn Connection Request
Hi {{first_name}}, I work with spatial biology teams in Boston and would like to connect.

LinkedIn Message
Hi {{first_name}}, I sent you a couple of emails about your biopsy work.

Email 3
Subject: One more idea

Hi {{first_name}},

With CosMx, you can map T cell to tumor contacts in FFPE biopsies.

{{availability}}

Best,
Tim

Email 4
Subject: Closing out

Hi {{first_name}},

Timing may not be right. I will reconnect later in the year.

Best,
Tim
"""


@pytest.fixture
def draft_sequence():
    return DRAFT_SEQUENCE
