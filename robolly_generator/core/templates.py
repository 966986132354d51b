"""Pure helpers shaping Robolly template and element listings."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List

TEMPLATE_TYPES = ('all', 'image', 'video')

# Operation name -> parameter holding the template id
TEMPLATE_PARAMS = {
    'getTemplateElements': 'template_id',
    'generateImage': 'image_template',
    'generateVideo': 'video_template',
}


def is_video_template(template: Dict[str, Any]) -> bool:
    """Image templates carry an explicit null ``transition``; anything else is video."""
    return 'transition' not in template or template['transition'] is not None


def check_templates_type(templates_type: str) -> str:
    if templates_type not in TEMPLATE_TYPES:
        raise ValueError(f'Unknown templates type: {templates_type}')
    return templates_type


def matches_type(template: Dict[str, Any], templates_type: str) -> bool:
    if templates_type == 'all':
        return True
    return is_video_template(template) == (templates_type == 'video')


def template_options(templates: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Picker entries for a template listing."""
    return [
        {
            'name': t.get('name') or 'Unnamed Template',
            'value': t.get('id'),
            'description': f"Template ID: {t.get('id')}",
        }
        for t in templates
    ]


def element_options(accepted_modifications: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Picker entries for the elements a template accepts.

    Ordering: plain elements first, then text colors, then rectangles each
    followed by its background color.
    """
    mods = list(accepted_modifications or [])
    options: List[Dict[str, str]] = []

    for item in mods:
        if item.get('elementType') != 'rect':
            options.append({
                'name': item['key'],
                'value': item['key'],
                'description': f"{item.get('elementType')} type: {item.get('type')}",
            })

    for item in mods:
        if item.get('elementType') == 'text':
            options.append({
                'name': f"{item['key']} (Text Color)",
                'value': f"{item['key']}.textColor",
                'description': 'Text color property',
            })

    for item in mods:
        if item.get('elementType') == 'rect':
            options.append({
                'name': item['key'],
                'value': item['key'],
                'description': 'Rectangle element',
            })
            options.append({
                'name': f"{item['key']} (Background Color)",
                'value': f"{item['key']}.background.color",
                'description': 'Background color property',
            })

    return options


def template_id_for_operation(operation: str, params: Dict[str, Any]):
    """Return the template id an operation's parameters refer to, if any."""
    key = TEMPLATE_PARAMS.get(operation)
    if key is None:
        return None
    return params.get(key) or None
