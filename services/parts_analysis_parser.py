"""
Parts Analysis Parser - Turns language model output into a fixed parts analysis record.

Model output arrives in whatever shape the workflow produced: an already
structured object, a JSON string, JSON wrapped in a markdown fence, or free
markdown text. Strategies are tried in that order and the first one that
yields a record wins. When nothing works a low-confidence fallback record is
returned, so callers always get the same shape back.

Record fields:
    modelNumber, appliance, brand, confidence, recommendedParts,
    analysisNotes, timestamp, source, originalProblem, rawOutput
"""

import json
import logging
import math
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = 'ChatGPT-4 via n8n'
FALLBACK_CONFIDENCE = 0.3
BASE_CONFIDENCE = 0.7
MAX_CONFIDENCE = 0.95

# Keys commonly used by workflow nodes to carry the model's text
TEXT_KEYS = ('output', 'text', 'content', 'message', 'response', 'result')
# Keys commonly used to wrap a structured analysis
WRAPPER_KEYS = ('analysis', 'partsAnalysis', 'parts_analysis', 'data', 'json', 'output', 'result')
PARTS_KEYS = ('recommendedParts', 'recommended_parts', 'parts')

MODEL_NUMBER_RE = re.compile(r'(?:Samsung\s+)?([A-Z]{2,3}\d{2,3}[A-Z]\d{4}[A-Z]{2,3})', re.I)
BRAND_RE = re.compile(
    r'\b(Samsung|LG|Whirlpool|GE|Maytag|Frigidaire|Bosch|KitchenAid|Electrolux|Kenmore)\b', re.I
)
WORKFLOW_SPLIT_RE = re.compile(r'Suggested Workflow[^:]*:', re.I)
WORKFLOW_RE = re.compile(r'Suggested Workflow[^:]*:\s*([\s\S]*?)(?=\n\n|\n[A-Z]|$)', re.I)
NUMBERED_ITEM_RE = re.compile(r'\d+\.\s+')
PART_NUMBER_RE = re.compile(r'(?:OEM\s+)?Part\s+Number:\s*([A-Z0-9-]+)', re.I)
ALTERNATE_RE = re.compile(r'Alternate:\s*([A-Z0-9-]+)', re.I)
FAILURE_MODE_RE = re.compile(r'Failure Mode:\s*([^•\n]+)', re.I)
# A tip may wrap onto following lines, but stops at a bullet, blank line or the next numbered item
DIAGNOSTIC_TIP_RE = re.compile(
    r'Diagnostic Tip:\s*([^•\n]+(?:\n(?![ \t]*(?:\d+\.\s|$))[^•\n]*)*)', re.I | re.M
)
GENERAL_NOTE_RE = re.compile(r'(?:Note|Important|Warning):\s*([^•\n]+)', re.I)
JSON_FENCE_RE = re.compile(r'```(?:json)?\s*([\[{][\s\S]*?[\]}])\s*```', re.I)

APPLIANCE_KEYWORDS = {
    'washer': ['washer', 'washing machine', 'front door', 'boot gasket', 'spin cycle'],
    'dryer': ['dryer', 'heating element', 'lint trap', 'exhaust'],
    'refrigerator': ['refrigerator', 'freezer', 'compressor', 'evaporator'],
    'dishwasher': ['dishwasher', 'wash pump', 'drain hose', 'spray arm'],
    'stove': ['stove', 'oven', 'range', 'heating element', 'igniter'],
    'microwave': ['microwave', 'magnetron', 'turntable', 'door latch'],
}

CATEGORY_KEYWORDS = {
    'gasket': 'Seals & Gaskets',
    'seal': 'Seals & Gaskets',
    'clamp': 'Hardware',
    'spring': 'Hardware',
    'lock': 'Door & Latch',
    'latch': 'Door & Latch',
    'pump': 'Pumps & Motors',
    'motor': 'Pumps & Motors',
    'element': 'Heating Elements',
    'control': 'Electronics',
    'board': 'Electronics',
    'hose': 'Hoses & Connections',
    'valve': 'Valves & Controls',
}

PRICE_RANGES = {
    'Seals & Gaskets': (25, 85),
    'Hardware': (15, 45),
    'Door & Latch': (45, 120),
    'Pumps & Motors': (80, 250),
    'Heating Elements': (35, 95),
    'Electronics': (60, 200),
    'Hoses & Connections': (20, 60),
    'Valves & Controls': (30, 90),
    'General': (25, 75),
}

PRIORITY_BY_POSITION = {1: 'High', 2: 'Medium', 3: 'Low'}
PRIORITIES = ('High', 'Medium', 'Low')

APPLIANCE_CATEGORIES = {
    'washer': 'Washing Machine',
    'dryer': 'Dryer',
    'refrigerator': 'Refrigerator',
    'dishwasher': 'Dishwasher',
    'stove': 'Stove/Oven',
    'microwave': 'Microwave',
}


class PartsAnalysisParseError(Exception):
    """Raised when model output has no usable content"""
    pass


# =============================================================================
# FIELD EXTRACTORS
# =============================================================================

def extract_model_number(text: str, fallback: str = '') -> str:
    match = MODEL_NUMBER_RE.search(text or '')
    return match.group(1) if match else fallback


def extract_appliance(text: str) -> str:
    text_lower = (text or '').lower()
    for appliance, keywords in APPLIANCE_KEYWORDS.items():
        if any(keyword in text_lower for keyword in keywords):
            return appliance
    return 'unknown'


def extract_brand(text: str) -> str:
    match = BRAND_RE.search(text or '')
    return match.group(1) if match else 'Unknown'


def extract_confidence(text: str) -> float:
    """Estimate confidence from how much detail the response carries."""
    text = text or ''
    confidence = BASE_CONFIDENCE

    if 'OEM Part Number' in text:
        confidence += 0.1
    if 'Diagnostic Tip' in text:
        confidence += 0.05
    if 'Failure Mode' in text:
        confidence += 0.05
    if 'genuine' in text or 'verified' in text:
        confidence += 0.05
    if len(text) > 500:
        confidence += 0.05

    return round(min(confidence, MAX_CONFIDENCE), 2)


def determine_part_category(part_name: str) -> str:
    name_lower = (part_name or '').lower()
    for keyword, category in CATEGORY_KEYWORDS.items():
        if keyword in name_lower:
            return category
    return 'General'


def determine_priority(failure_mode: str, position: int) -> str:
    """Leaks and safety issues are always High; otherwise earlier parts rank higher."""
    failure_lower = (failure_mode or '').lower()
    if 'leak' in failure_lower or 'water' in failure_lower or 'safety' in failure_lower:
        return 'High'
    return PRIORITY_BY_POSITION.get(position, 'Medium')


def estimate_part_price(category: str) -> int:
    """Midpoint of the typical price range for the category."""
    low, high = PRICE_RANGES.get(category, PRICE_RANGES['General'])
    return (low + high) // 2


def parse_part_section(section: str, position: int) -> Optional[Dict[str, Any]]:
    """Parse one numbered part section of a markdown response."""
    lines = [line.strip() for line in section.split('\n') if line.strip()]
    part_name = lines[0] if lines else f'Part {position}'

    part_number_match = PART_NUMBER_RE.search(section)
    alternate_match = ALTERNATE_RE.search(section)
    failure_match = FAILURE_MODE_RE.search(section)
    diagnostic_match = DIAGNOSTIC_TIP_RE.search(section)

    failure_mode = failure_match.group(1).strip() if failure_match else ''
    diagnostic_tip = _collapse(diagnostic_match.group(1)) if diagnostic_match else ''
    category = determine_part_category(part_name)

    return {
        'name': part_name,
        'partNumber': part_number_match.group(1) if part_number_match else '',
        'alternatePartNumber': alternate_match.group(1) if alternate_match else '',
        'category': category,
        'priority': determine_priority(failure_mode, position),
        'price': estimate_part_price(category),
        'description': f'{failure_mode} {diagnostic_tip}'.strip(),
        'failureMode': failure_mode,
        'diagnosticTip': diagnostic_tip,
    }


def extract_recommended_parts(text: str) -> List[Dict[str, Any]]:
    """Numbered part sections before any 'Suggested Workflow' heading that carry a part number."""
    parts_section = WORKFLOW_SPLIT_RE.split(text or '', maxsplit=1)[0]
    sections = NUMBERED_ITEM_RE.split(parts_section)

    parts = []
    for position, section in enumerate(sections[1:], start=1):
        part = parse_part_section(section, position)
        if part and part['partNumber']:
            parts.append(part)
    return parts


def extract_analysis_notes(text: str) -> List[str]:
    """Workflow steps, diagnostic tips and Note/Important/Warning lines."""
    text = text or ''
    notes = []

    workflow_match = WORKFLOW_RE.search(text)
    if workflow_match:
        for step in NUMBERED_ITEM_RE.split(workflow_match.group(1).strip()):
            step = _collapse(step)
            if step:
                notes.append(f'Workflow: {step}')

    for match in DIAGNOSTIC_TIP_RE.finditer(text):
        tip = _collapse(match.group(1))
        if tip:
            notes.append(f'Diagnostic: {tip}')

    for match in GENERAL_NOTE_RE.finditer(text):
        notes.append(match.group(0).strip())

    return notes


def _collapse(value: str) -> str:
    return re.sub(r'\s+', ' ', value or '').strip()


# =============================================================================
# INPUT UNWRAPPING
# =============================================================================

def extract_output_text(raw: Any, _depth: int = 0) -> str:
    """
    Pull the model's text out of the common wrapper shapes:
    a plain string, [{'output': ...}], {'output': ...}, {'text': ...} and so on.
    """
    if raw is None or _depth > 4:
        return ''
    if isinstance(raw, str):
        return raw
    if isinstance(raw, list):
        for item in raw:
            text = extract_output_text(item, _depth + 1)
            if text:
                return text
        return ''
    if isinstance(raw, dict):
        for key in TEXT_KEYS:
            if key in raw:
                text = extract_output_text(raw[key], _depth + 1)
                if text:
                    return text
        # OpenAI style {'choices': [{'message': {'content': ...}}]}
        if 'choices' in raw:
            return extract_output_text(raw['choices'], _depth + 1)
    return ''


def find_structured_analysis(raw: Any, _depth: int = 0) -> Optional[Dict[str, Any]]:
    """Find a dict that already carries a parts list, looking through wrapper keys."""
    if _depth > 4:
        return None
    if isinstance(raw, list):
        for item in raw:
            found = find_structured_analysis(item, _depth + 1)
            if found:
                return found
        return None
    if not isinstance(raw, dict):
        return None
    if any(isinstance(raw.get(key), list) for key in PARTS_KEYS):
        return raw
    for key in WRAPPER_KEYS:
        if isinstance(raw.get(key), (dict, list)):
            found = find_structured_analysis(raw[key], _depth + 1)
            if found:
                return found
    return None


def _load_json(candidate: str) -> Any:
    try:
        return json.loads(candidate)
    except (TypeError, ValueError):
        return None


def parse_json_text(text: str) -> Optional[Dict[str, Any]]:
    """The whole text is a JSON document."""
    stripped = (text or '').strip()
    if not stripped or stripped[0] not in '{[':
        return None
    return find_structured_analysis(_load_json(stripped))


def parse_embedded_json(text: str) -> Optional[Dict[str, Any]]:
    """JSON inside a markdown fence, or the outermost {...} block of the text."""
    for match in JSON_FENCE_RE.finditer(text or ''):
        found = find_structured_analysis(_load_json(match.group(1)))
        if found:
            return found

    start, end = (text or '').find('{'), (text or '').rfind('}')
    if start != -1 and end > start:
        return find_structured_analysis(_load_json(text[start:end + 1]))
    return None


# =============================================================================
# RECORD BUILDING
# =============================================================================

def _first(data: Dict[str, Any], *keys, default=None):
    for key in keys:
        value = data.get(key)
        if value not in (None, ''):
            return value
    return default


def _coerce_confidence(value: Any, fallback: float) -> float:
    try:
        confidence = float(str(value).rstrip('%')) if value is not None else None
    except ValueError:
        confidence = None
    if confidence is None or math.isnan(confidence):
        return fallback
    # Percentages like 85 or "85%"
    if confidence > 1:
        confidence = confidence / 100
    return round(max(0.0, min(confidence, 1.0)), 2)


def _coerce_price(value: Any, category: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        match = re.search(r'\d+(?:\.\d+)?', value.replace(',', ''))
        if match:
            number = float(match.group(0))
            return int(number) if number.is_integer() else number
    return estimate_part_price(category)


def normalize_part(part: Any, position: int) -> Optional[Dict[str, Any]]:
    """Normalize one part from a structured response. Bare strings become named parts."""
    if isinstance(part, str):
        part = {'name': part}
    if not isinstance(part, dict):
        return None

    name = str(_first(part, 'name', 'partName', 'part_name', 'title', default='')).strip()
    part_number = str(_first(part, 'partNumber', 'part_number', 'oemPartNumber', 'oem_part_number',
                             default='')).strip()
    if not name and not part_number:
        return None

    failure_mode = str(_first(part, 'failureMode', 'failure_mode', default='')).strip()
    diagnostic_tip = str(_first(part, 'diagnosticTip', 'diagnostic_tip', default='')).strip()
    category = _first(part, 'category', default=None) or determine_part_category(name)
    priority = str(_first(part, 'priority', default='')).capitalize()
    if priority not in PRIORITIES:
        priority = determine_priority(failure_mode, position)

    return {
        'name': name or f'Part {position}',
        'partNumber': part_number,
        'alternatePartNumber': str(_first(part, 'alternatePartNumber', 'alternate_part_number',
                                          'alternate', default='')).strip(),
        'category': category,
        'priority': priority,
        'price': _coerce_price(part.get('price'), category),
        'description': str(_first(part, 'description', default=f'{failure_mode} {diagnostic_tip}')).strip(),
        'failureMode': failure_mode,
        'diagnosticTip': diagnostic_tip,
    }


def _normalize_notes(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value)]


def build_record_from_structured(data: Dict[str, Any], model_number: str, problem_description: str,
                                 source: str, raw_text: str) -> Dict[str, Any]:
    """Normalize an already-structured analysis into the record shape."""
    reference_text = raw_text or json.dumps(data, default=str)
    raw_parts = next((data[key] for key in PARTS_KEYS if isinstance(data.get(key), list)), [])

    parts = []
    for position, raw_part in enumerate(raw_parts, start=1):
        part = normalize_part(raw_part, position)
        if part:
            parts.append(part)

    notes = _normalize_notes(_first(data, 'analysisNotes', 'analysis_notes', 'notes'))
    for step in _normalize_notes(_first(data, 'workflow', 'suggestedWorkflow', 'suggested_workflow')):
        notes.append(f'Workflow: {step}')

    appliance = str(_first(data, 'appliance', 'applianceType', 'appliance_type', default='')).lower()

    return {
        'modelNumber': str(_first(data, 'modelNumber', 'model_number', default=model_number or '')),
        'appliance': appliance or extract_appliance(reference_text),
        'brand': str(_first(data, 'brand', default='')) or extract_brand(reference_text),
        'confidence': _coerce_confidence(data.get('confidence'), extract_confidence(reference_text)),
        'recommendedParts': parts,
        'analysisNotes': notes,
        'timestamp': datetime.utcnow().isoformat(),
        'source': str(_first(data, 'source', default=source)),
        'originalProblem': problem_description,
        'rawOutput': raw_text or None,
    }


def parse_markdown_analysis(text: str, model_number: str, problem_description: str,
                            source: str) -> Dict[str, Any]:
    """Regex scrape of a free-text markdown response."""
    return {
        'modelNumber': extract_model_number(text, model_number),
        'appliance': extract_appliance(text),
        'brand': extract_brand(text),
        'confidence': extract_confidence(text),
        'recommendedParts': extract_recommended_parts(text),
        'analysisNotes': extract_analysis_notes(text),
        'timestamp': datetime.utcnow().isoformat(),
        'source': source,
        'originalProblem': problem_description,
        'rawOutput': text,
    }


def create_fallback_response(model_number: str, problem_description: str, error_message: str,
                             source: str = DEFAULT_SOURCE) -> Dict[str, Any]:
    """Low-confidence record used when nothing could be parsed."""
    return {
        'modelNumber': model_number or 'Unknown',
        'appliance': 'unknown',
        'brand': 'Unknown',
        'confidence': FALLBACK_CONFIDENCE,
        'recommendedParts': [],
        'analysisNotes': [
            'Error parsing parts analysis response',
            f'Error: {error_message}',
            'Manual analysis recommended'
        ],
        'timestamp': datetime.utcnow().isoformat(),
        'source': f'{source} (parsing failed)',
        'originalProblem': problem_description,
        'rawOutput': None,
    }


def normalize_parts_analysis(raw: Any, model_number: str = '', problem_description: str = '',
                             source: str = DEFAULT_SOURCE) -> Dict[str, Any]:
    """
    Coerce model output of unknown shape into a parts analysis record.

    Strategies, first success wins:
      1. an object that already carries a parts list
      2. the text is a JSON document
      3. JSON embedded in markdown
      4. regex scrape of markdown text
    Anything else yields the fallback record.
    """
    try:
        structured = find_structured_analysis(raw)
        if structured:
            logger.debug("Parts analysis: using structured object")
            return build_record_from_structured(
                structured, model_number, problem_description, source, ''
            )

        text = extract_output_text(raw)
        if not text or not text.strip():
            raise PartsAnalysisParseError('No output text found in model response')

        for strategy in (parse_json_text, parse_embedded_json):
            structured = strategy(text)
            if structured:
                logger.debug(f"Parts analysis: parsed with {strategy.__name__}")
                return build_record_from_structured(
                    structured, model_number, problem_description, source, text
                )

        logger.debug("Parts analysis: falling back to markdown scraping")
        return parse_markdown_analysis(text, model_number, problem_description, source)

    except Exception as e:
        logger.error(f"Error parsing parts analysis output: {e}")
        return create_fallback_response(model_number, problem_description, str(e), source)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

def estimate_duration(parts_count: int, urgency: str) -> str:
    """30 minutes per part, scaled by urgency, formatted as 'Xh Ym' or 'Ym'."""
    base_minutes = parts_count * 30
    multiplier = 1.5 if urgency == 'High' else 0.8 if urgency == 'Low' else 1.0

    total_minutes = math.ceil(base_minutes * multiplier)
    hours, minutes = divmod(total_minutes, 60)

    if hours > 0:
        return f'{hours}h {minutes}m'
    return f'{minutes}m'


def convert_to_auto_tag_result(analysis: Dict[str, Any]) -> Dict[str, Any]:
    """Summarize an analysis as category / urgency / duration / part names."""
    parts = analysis.get('recommendedParts') or []
    priorities = [part.get('priority') for part in parts]

    if 'High' in priorities:
        urgency = 'High'
    elif 'Medium' in priorities:
        urgency = 'Medium'
    else:
        urgency = 'Low'

    return {
        'category': APPLIANCE_CATEGORIES.get(analysis.get('appliance'), 'General Appliance'),
        'urgency': urgency,
        'estimatedDuration': estimate_duration(len(parts), urgency),
        'suggestedParts': [part.get('name') for part in parts],
        'confidence': analysis.get('confidence', 0),
    }


def format_analysis_summary(analysis: Dict[str, Any]) -> str:
    """Plain text summary suitable for notes or an SMS."""
    brand = analysis.get('brand') or 'Unknown'
    appliance = analysis.get('appliance') or 'unknown'
    confidence = int(round(float(analysis.get('confidence') or 0) * 100))

    lines = [f"{brand} {appliance} (model {analysis.get('modelNumber') or 'Unknown'}) - {confidence}% confidence"]

    parts = analysis.get('recommendedParts') or []
    if parts:
        lines.append('Recommended parts:')
        for index, part in enumerate(parts, start=1):
            number = f" - {part['partNumber']}" if part.get('partNumber') else ''
            lines.append(f"{index}. {part.get('name')}{number} [{part.get('priority')}] ~${part.get('price')}")
    else:
        lines.append('No specific parts identified.')

    return '\n'.join(lines)
