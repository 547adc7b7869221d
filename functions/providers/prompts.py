"""Prompt builders shared by the LLM providers.

Providers must answer with a single JSON object in one of three modes
(conversation, estimation, quote); the ResponseNormalizer reads those
shapes.
"""

import json
from typing import List

from models.request import AnalysisRequest

SYSTEM_PROMPT = (
    "You are a highly experienced UK construction contractor and estimator with 20+ years "
    "in the industry. Analyze construction projects and provide accurate quotes using current "
    "UK market rates in GBP, VAT included. Always respond with a single valid JSON object."
)

INFORMATION_ASSESSMENT = """\
Score the information available (0-8 points total):
1. Project type clarity (0-2): vague, general ("kitchen"), or specific ("single-story kitchen extension")
2. Size and scope (0-2): none, vague ("small"), or specific dimensions
3. Quality requirements (0-2): none, general ("good quality"), or specific finish level
4. Constraints (0-2): none, some context (budget, timing), or detailed (access, structural, utilities)

Choose a response mode from the score:
- 0-2 points: CONVERSATION. Ask 2-3 clarifying questions. No cost figures.
- 3-5 points: ESTIMATION. Rough range with caveats, ask for the remaining details.
- 6-8 points: QUOTE. Full cost breakdown.
A photo of the work area counts as 2 points of size and scope."""

RESPONSE_FORMATS = """\
CONVERSATION:
{"responseType": "conversation", "projectType": "...", "message": "...",
 "questionsAsked": ["..."], "informationNeeded": ["..."], "confidence": 0}

ESTIMATION:
{"responseType": "estimation", "projectType": "...", "message": "...",
 "roughEstimate": {"min": 0, "max": 0, "caveats": ["..."]},
 "questionsAsked": ["..."], "confidence": 50, "recommendations": ["..."]}

QUOTE:
{"responseType": "quote", "projectType": "...", "description": "...",
 "difficultyLevel": "Easy|Moderate|Difficult|Professional Required",
 "costBreakdown": {
   "materials": {"min": 0, "max": 0, "items": [
     {"name": "...", "quantity": "amount with units", "unitPrice": 0, "totalPrice": 0}]},
   "labor": {"min": 0, "max": 0, "hourlyRate": 0, "estimatedHours": 0},
   "total": {"min": 0, "max": 0}},
 "timeline": {"diy": "...", "professional": "...",
   "phases": [{"name": "...", "duration": "...", "description": "..."}]},
 "toolsRequired": [{"name": "...", "category": "hand_tools|power_tools|heavy_machinery|safety|access",
   "dailyRentalPrice": 0, "estimatedDays": 0, "required": true, "alternatives": ["..."]}],
 "safetyConsiderations": ["..."], "permitsRequired": ["..."],
 "requiresProfessional": false, "professionalReasons": ["..."],
 "confidence": 75, "recommendations": ["..."], "warnings": ["..."]}"""


def _context_lines(request: AnalysisRequest) -> List[str]:
    context = request.context
    lines = []
    if context.project_type:
        lines.append(f"Project Type: {context.project_type}")
    if context.budget_range:
        lines.append(f"Budget Range: £{context.budget_range.min:,.0f} - £{context.budget_range.max:,.0f}")
    lines.append(f"Location: {context.location}" if context.location else "Location: UK-based project")
    if context.user_preferences:
        lines.append(f"Preferences: {', '.join(context.user_preferences)}")
    if context.market_data:
        lines.append(f"Current market data: {json.dumps(context.market_data)}")
    return lines


def build_analysis_prompt(request: AnalysisRequest, history_turns: int = 3) -> str:
    """Full analysis prompt, including recent history inline.

    Args:
        request: The analysis request.
        history_turns: How many trailing history turns to inline; 0 for none
            (providers that send history as chat messages pass 0).
    """
    sections = ["CONTEXT:", *_context_lines(request)]

    if history_turns and request.history:
        recent = [
            {"role": turn.role, "content": turn.content}
            for turn in request.history[-history_turns:]
        ]
        sections.append(f"Previous Conversation: {json.dumps(recent)}")

    sections += [
        "",
        "INFORMATION ASSESSMENT:",
        INFORMATION_ASSESSMENT,
        "",
        "RESPONSE FORMATS (return exactly one JSON object):",
        RESPONSE_FORMATS,
        "",
        f'USER INPUT: "{request.message or "No specific message provided"}"',
    ]
    if request.has_image:
        sections.append("A photo of the project is attached. Base quantities on what is visible.")

    return "\n".join(sections)
