"""
Parts Analysis Service - Recommends replacement parts for a service call.

Sources are tried in order:
1. the automation server's parts analysis webhook
2. a direct Claude call when the server can't be reached
3. local keyword analysis, which always answers
"""

import logging
from datetime import datetime
from typing import Dict, List, Any, Optional

from ai_service import AIServiceError
from services.automation_client import AutomationServerError, PARTS_ANALYSIS_WEBHOOK
from services.parts_analysis_parser import (
    normalize_parts_analysis,
    normalize_part,
    convert_to_auto_tag_result,
    format_analysis_summary,
)

logger = logging.getLogger(__name__)

CLAUDE_SOURCE = 'Claude via Anthropic API'
LOCAL_SOURCE = 'Local keyword analysis'
LOCAL_CONFIDENCE = 0.75

PARTS_ANALYSIS_SYSTEM_PROMPT = """You are an experienced appliance repair technician.
Given an appliance model number and a problem description, identify the most likely failed parts.

Respond with JSON only, using this shape:
{
  "modelNumber": "...",
  "appliance": "washer|dryer|refrigerator|dishwasher|oven|stove|microwave",
  "brand": "...",
  "confidence": 0.0-1.0,
  "recommendedParts": [
    {"name": "...", "partNumber": "...", "alternatePartNumber": "...", "priority": "High|Medium|Low",
     "failureMode": "...", "diagnosticTip": "..."}
  ],
  "analysisNotes": ["..."]
}
List parts from most to least likely. Use OEM part numbers when you know them."""

# Keyword -> suggested parts, per appliance category
SUGGESTED_PARTS = {
    'Washer': (
        (('leak',), ['Door seal', 'Water pump', 'Hoses']),
        (('spin', 'agitator'), ['Drive belt', 'Motor coupler', 'Agitator']),
        (('drain',), ['Drain pump', 'Drain hose']),
    ),
    'Dryer': (
        (('heat',), ['Heating element', 'Thermal fuse', 'Thermostat']),
        (('belt',), ['Drive belt', 'Idler pulley']),
        (('lint',), ['Lint filter', 'Exhaust vent']),
    ),
    'Stove/Oven': (
        (('burner',), ['Burner element', 'Burner switch', 'Drip pan']),
        (('oven',), ['Oven element', 'Temperature sensor', 'Door seal']),
        (('igniter',), ['Gas igniter', 'Safety valve']),
    ),
    'Refrigerator': (
        (('cooling',), ['Compressor', 'Evaporator fan', 'Condenser coils']),
        (('ice',), ['Ice maker assembly', 'Water filter', 'Water line']),
        (('door',), ['Door seal', 'Door handle', 'Hinges']),
    ),
}

# Local category -> record appliance name
LOCAL_APPLIANCES = {
    'Washer': 'washer',
    'Dryer': 'dryer',
    'Stove/Oven': 'oven',
    'Refrigerator': 'refrigerator',
    'General': 'unknown',
}


def detect_category(problem: str) -> str:
    if 'washer' in problem or 'washing machine' in problem:
        return 'Washer'
    if 'dryer' in problem:
        return 'Dryer'
    if 'stove' in problem or 'oven' in problem:
        return 'Stove/Oven'
    if 'fridge' in problem or 'refrigerator' in problem:
        return 'Refrigerator'
    return 'General'


def detect_urgency(problem: str) -> str:
    if 'emergency' in problem or 'leak' in problem:
        return 'Emergency'
    if 'not working' in problem:
        return 'High'
    if 'noise' in problem:
        return 'Low'
    return 'Medium'


def get_suggested_parts(category: str, problem: str) -> List[str]:
    parts = []
    for keywords, names in SUGGESTED_PARTS.get(category, ()):
        if any(keyword in problem for keyword in keywords):
            parts.extend(names)
    return parts


def analyze_appliance_problem(problem_description: str, model_number: str = '') -> Dict[str, Any]:
    """
    Keyword based triage used when no model is reachable.

    Returns an auto-tag result: category, urgency, estimatedDuration,
    suggestedParts, confidence, likelyProblem.
    """
    problem = (problem_description or '').lower()
    logger.info(f"Performing local analysis for problem: \"{problem}\" and model: \"{model_number or 'N/A'}\"")

    category = detect_category(problem)

    return {
        'category': category,
        'urgency': detect_urgency(problem),
        'estimatedDuration': '2-4 hours',
        'suggestedParts': get_suggested_parts(category, problem),
        'confidence': LOCAL_CONFIDENCE,
        'likelyProblem': f"The {category.lower()} is likely having an issue with its main function.",
    }


def build_local_analysis(model_number: str, problem_description: str) -> Dict[str, Any]:
    """Express the local triage as a full parts analysis record."""
    tag = analyze_appliance_problem(problem_description, model_number)

    parts = []
    for position, name in enumerate(tag['suggestedParts'], start=1):
        part = normalize_part(name, position)
        if part:
            parts.append(part)

    return {
        'modelNumber': model_number or 'Unknown',
        'appliance': LOCAL_APPLIANCES[tag['category']],
        'brand': 'Unknown',
        'confidence': LOCAL_CONFIDENCE,
        'recommendedParts': parts,
        'analysisNotes': [
            tag['likelyProblem'],
            f"Urgency: {tag['urgency']}",
            f"Estimated duration: {tag['estimatedDuration']}",
        ],
        'timestamp': datetime.utcnow().isoformat(),
        'source': LOCAL_SOURCE,
        'originalProblem': problem_description,
        'rawOutput': None,
    }


class PartsAnalysisService:
    """Runs the analysis chain and packages the result for the API."""

    def __init__(self, automation_client=None, ai_service=None):
        self.automation_client = automation_client
        self.ai_service = ai_service

    def _analyze_with_automation(self, model_number: str, problem_description: str) -> Optional[Dict]:
        if not self.automation_client or not self.automation_client.is_ready():
            return None

        try:
            raw = self.automation_client.trigger_webhook(PARTS_ANALYSIS_WEBHOOK, {
                'modelNumber': model_number,
                'problemDescription': problem_description,
            })
        except AutomationServerError as e:
            logger.warning(f"Parts analysis webhook failed, trying next source: {e.message}")
            return None

        return normalize_parts_analysis(raw, model_number, problem_description)

    def _analyze_with_claude(self, model_number: str, problem_description: str) -> Optional[Dict]:
        if not self.ai_service or not self.ai_service.is_available('claude'):
            return None

        prompt = (
            f"Appliance model number: {model_number or 'unknown'}\n"
            f"Problem description: {problem_description}"
        )
        try:
            text = self.ai_service.complete_text(prompt, system=PARTS_ANALYSIS_SYSTEM_PROMPT)
        except AIServiceError as e:
            logger.warning(f"Claude parts analysis failed, using local analysis: {e}")
            return None

        return normalize_parts_analysis(text, model_number, problem_description, source=CLAUDE_SOURCE)

    def analyze(self, model_number: str, problem_description: str) -> Dict[str, Any]:
        """
        Analyze a call's appliance problem.

        Returns:
            {'success': True, 'analysis': record, 'summary': str, 'autoTag': dict}
        """
        analysis = (
            self._analyze_with_automation(model_number, problem_description)
            or self._analyze_with_claude(model_number, problem_description)
            or build_local_analysis(model_number, problem_description)
        )

        logger.info(
            f"Parts analysis for {model_number or 'unknown model'} from {analysis['source']}: "
            f"{len(analysis['recommendedParts'])} part(s)"
        )
        return {
            'success': True,
            'analysis': analysis,
            'summary': format_analysis_summary(analysis),
            'autoTag': convert_to_auto_tag_result(analysis),
        }
