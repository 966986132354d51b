"""
Command-line interface for the Robolly generator
"""
import argparse
import json
import logging
import os
import sys
from typing import List, Optional, Tuple

from .config import Config
from .operations import (
    OPERATIONS,
    IMAGE_FORMATS,
    IMAGE_SCALES,
    VIDEO_FPS,
    element_picker,
    execute,
    template_picker,
)
from .conversion import IMAGE_TARGETS, VIDEO_TARGETS
from .services.api import RobollyClient
from .services.assets import download_file, file_name_from_url, save_binary
from .services.errors import RobollyError


def parse_elements(values: Optional[List[str]]) -> List[Tuple[str, str]]:
    """Parse ``KEY=VALUE`` element assignments, keeping their order.

    Raises ``ValueError`` for entries without ``=`` or with an empty key.
    """
    pairs: List[Tuple[str, str]] = []
    for raw in values or []:
        if '=' not in raw:
            raise ValueError(f"Element must be KEY=VALUE, got '{raw}'")
        key, value = raw.split('=', 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Element key is empty in '{raw}'")
        pairs.append((key, value))
    return pairs


def read_payload(path: str) -> str:
    """Read a movie payload from ``path`` (``-`` for stdin) and validate it."""
    if path == '-':
        text = sys.stdin.read()
    else:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    try:
        json.loads(text)
    except ValueError as e:
        raise ValueError(f"Movie payload is not valid JSON: {e}")
    return text


def output_file_name(binary, name: Optional[str]) -> str:
    """File name for a saved binary; ``name`` overrides the stem."""
    if not name:
        return binary.file_name
    root, ext = os.path.splitext(name)
    return name if ext else f"{root}.{binary.file_extension}"


def make_client(config: Config) -> RobollyClient:
    return RobollyClient(
        api_key=config.get('api_key'),
        base_url=config.get('api_base_url'),
        timeout=config.get('timeout', 30),
    )


def load_config(args) -> Config:
    """Build the configuration: defaults, YAML file, environment, then args."""
    config_path = args.config
    if not config_path:
        # Look for a default config in the working directory
        for candidate in ('config.yml', 'config.yaml'):
            candidate = os.path.join(os.getcwd(), candidate)
            if os.path.exists(candidate):
                config_path = candidate
                break
    config = Config(config_file=config_path)
    config.update_from_env()
    config.update_from_args({
        'api_key': args.api_key,
        'output_dir': args.output_dir,
    })
    return config


def print_items(items, as_json: bool = False) -> None:
    """Print JSON-only items: a table by default, raw JSON on request."""
    if as_json:
        print(json.dumps([item.json for item in items], indent=2, ensure_ascii=False))
        return
    for item in items:
        data = item.json
        label = data.get('name') or data.get('templateName') or data.get('file') or ''
        print(f"{data.get('id', '-')}  {label}".rstrip())
    print(f"\nTotal: {len(items)}")


def emit_render_items(items, output_dir: str, name: Optional[str] = None) -> List[str]:
    """Save the binaries of render items and print their JSON."""
    saved = []
    for item in items:
        if item.binary is not None:
            path = save_binary(item.binary, output_dir, output_file_name(item.binary, name))
            saved.append(path)
            print(f"✓ Saved: {path} ({item.binary.size} bytes)")
        print(json.dumps(item.json, indent=2, ensure_ascii=False))
    return saved


def run_templates(args, config, client):
    items = execute(client, 'getTemplates', {
        'templates_type': args.type,
        'return_all': args.limit is None,
        'limit': args.limit,
    }, config.get_all())
    print_items(items, args.json)


def run_renders(args, config, client):
    items = execute(client, 'getRenders', {
        'return_all': args.limit is None,
        'limit': args.limit,
    }, config.get_all())
    print_items(items, args.json)


def run_elements(args, config, client):
    if args.options:
        options = element_picker(client, 'getTemplateElements', {'template_id': args.template_id})
        if not options:
            print("No elements found for this template.")
            return
        for option in options:
            print(f"{option['value']:<40} {option['description']}")
        return
    items = execute(client, 'getTemplateElements', {'template_id': args.template_id}, config.get_all())
    print(json.dumps(items[0].json, indent=2, ensure_ascii=False))


def run_pick_template(args, config, client):
    options = template_picker(client, args.operation, args.limit)
    if not options:
        print("No templates available.")
        return
    for i, option in enumerate(options, 1):
        print(f"{i}. {option['name']} ({option['value']})")


def run_image(args, config, client):
    items = execute(client, 'generateImage', {
        'image_template': args.template_id,
        'image_format': args.format or config.get('image.format'),
        'scale': args.scale or config.get('image.scale'),
        'convert': args.convert if args.convert is not None else config.get('image.convert'),
        'extension': args.extension if args.extension is not None else config.get('image.extension'),
        'elements': parse_elements(args.element),
        'hidden_link': args.hidden_link,
        'link_only': args.link_only,
    }, config.get_all())
    emit_render_items(items, config.get('output_dir'), args.name)


def run_video(args, config, client):
    items = execute(client, 'generateVideo', {
        'video_template': args.template_id,
        'duration': args.duration if args.duration is not None else config.get('video.duration'),
        'fps': args.fps or config.get('video.fps'),
        'convert': args.convert if args.convert is not None else config.get('video.convert'),
        'extension': args.extension if args.extension is not None else config.get('video.extension'),
        'elements': parse_elements(args.element),
        'hidden_link': args.hidden_link,
        'probe': not args.no_probe,
    }, config.get_all())
    emit_render_items(items, config.get('output_dir'), args.name)


def run_movie(args, config, client):
    payload = read_payload(args.payload)
    print("Starting movie render...")
    items = execute(client, 'generateVideo', {
        'movie_generation': True,
        'payload': payload,
        'attempts': args.attempts or config.get('movie.attempts'),
    }, config.get_all())
    result = items[0].json
    print(json.dumps(result, indent=2, ensure_ascii=False))
    if args.download:
        target = os.path.join(config.get('output_dir'), args.name or file_name_from_url(result['videoUrl']))
        download_file(result['videoUrl'], target)
        print(f"✓ Saved: {target}")


def run_operations(args, config, client):
    for op in OPERATIONS:
        print(f"{op['value']:<22} {op['description']}")


COMMANDS = {
    'templates': run_templates,
    'renders': run_renders,
    'elements': run_elements,
    'pick-template': run_pick_template,
    'image': run_image,
    'video': run_video,
    'movie': run_movie,
    'operations': run_operations,
}

# Commands that never reach the API
OFFLINE_COMMANDS = ('operations',)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Render Robolly image and video templates')
    parser.add_argument('--config', type=str, help='Path to the YAML configuration file')
    parser.add_argument('--api-key', type=str, help='Robolly API key (defaults to ROBOLLY_API_KEY)')
    parser.add_argument('--output-dir', type=str, help='Output directory for generated files')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('templates', help='List the templates of the account')
    p.add_argument('--type', choices=['all', 'image', 'video'], default='all', help='Template type filter')
    p.add_argument('--limit', type=int, help='Maximum number of templates (default: all)')
    p.add_argument('--json', action='store_true', help='Print raw JSON')

    p = sub.add_parser('renders', help='List the renders of the account')
    p.add_argument('--limit', type=int, help='Maximum number of renders (default: all)')
    p.add_argument('--json', action='store_true', help='Print raw JSON')

    p = sub.add_parser('elements', help='Show the elements a template accepts')
    p.add_argument('template_id', help='Template ID')
    p.add_argument('--options', action='store_true', help='List element keys usable with --element')

    p = sub.add_parser('pick-template', help='List template choices for an operation')
    p.add_argument('--operation', choices=['generateImage', 'generateVideo', 'getTemplateElements'],
                   help='Restrict choices to the templates usable by this operation')
    p.add_argument('--limit', type=int, help='Maximum number of choices')

    p = sub.add_parser('image', help='Render an image template')
    p.add_argument('template_id', help='Image template ID')
    p.add_argument('--element', '-e', action='append', metavar='KEY=VALUE', help='Element value (repeatable)')
    p.add_argument('--format', choices=IMAGE_FORMATS, help='Rendered format (.png costs 3 credits, .jpg 1)')
    p.add_argument('--scale', choices=IMAGE_SCALES, help='Render scale relative to the template size')
    p.add_argument('--convert', choices=('',) + IMAGE_TARGETS, help='Convert the render locally')
    p.add_argument('--extension', choices=('', 'png', 'jpg'), help='Override the converted file extension')
    p.add_argument('--hidden-link', action='store_true', help='Use a base64-encoded /rd/ render link')
    p.add_argument('--link-only', action='store_true', help='Only print the render link')
    p.add_argument('--name', type=str, help='Output file name')

    p = sub.add_parser('video', help='Render a video template')
    p.add_argument('template_id', help='Video template ID')
    p.add_argument('--element', '-e', action='append', metavar='KEY=VALUE', help='Element value (repeatable)')
    p.add_argument('--duration', type=float, help='Duration in seconds')
    p.add_argument('--fps', type=int, choices=VIDEO_FPS, help='Frames per second')
    p.add_argument('--convert', choices=('',) + VIDEO_TARGETS, help='Re-encode the render locally')
    p.add_argument('--extension', choices=('', 'mp4'), help='Override the converted file extension')
    p.add_argument('--hidden-link', action='store_true', help='Use a base64-encoded /rd/ render link')
    p.add_argument('--no-probe', action='store_true', help='Skip reading back converted video metadata')
    p.add_argument('--name', type=str, help='Output file name')

    p = sub.add_parser('movie', help='Run an asynchronous movie render from a JSON payload')
    p.add_argument('payload', help="Path to the JSON payload ('-' for stdin)")
    p.add_argument('--attempts', type=int, help='Number of polls of the render resource')
    p.add_argument('--download', action='store_true', help='Download the finished movie')
    p.add_argument('--name', type=str, help='Output file name for --download')

    sub.add_parser('operations', help='List the supported operations')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Minimal logging setup; services use logging for diagnostics.
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = load_config(args)
        client = None if args.command in OFFLINE_COMMANDS else make_client(config)
        COMMANDS[args.command](args, config, client)
    except (RobollyError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
