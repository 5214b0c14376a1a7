import os
import sys
import logging
import argparse
import yaml

from ontograph.diagram_generator import generate_graphml
from ontograph.errors import OntographError
from ontograph.models import GraphRequest
from ontograph.style_vocabulary import NOTATIONS, SCOPES, CUSTOM_DEFAULTS

log = logging.getLogger("onto2graphml")


def load_style(path):
    """Style fields: the packaged custom defaults overlaid with an optional YAML file."""
    style = dict(CUSTOM_DEFAULTS)
    if path:
        with open(path, "r", encoding="utf-8") as f:
            overrides = yaml.safe_load(f) or {}
        if not isinstance(overrides, dict):
            raise ValueError(f"Style file {path} must hold a mapping of style fields")
        style.update({str(k): str(v) for k, v in overrides.items()})
        log.info("Loaded %d style fields from %s", len(overrides), path)
    return style


def output_path(input_path, output, single):
    if output and single:
        return output
    stem = os.path.splitext(input_path)[0]
    return f"{stem}.graphml"


def main(argv=None):
    ap = argparse.ArgumentParser(prog="onto2graphml", description="Draw ontologies as yEd GraphML diagrams")
    ap.add_argument("inputs", nargs="+", metavar="INPUT", help="Ontology files (ttl, owl, rdf, jsonld, ofn, ...)")
    ap.add_argument("-o", "--output", default=None, help="Output GraphML path (single input only)")
    ap.add_argument("--title", default=None, help="Diagram title (default: the input file name)")
    ap.add_argument("--notation", choices=NOTATIONS, default="graffoo", help="Visualization notation")
    ap.add_argument("--scope", choices=SCOPES, default="class", help="What part of the ontology to draw")
    ap.add_argument("--collapse", action="store_true", help="Merge parallel property edges")
    ap.add_argument("--reasoning", action="store_true", help="Request reasoning over the ontology")
    ap.add_argument("--style", default=None, help="YAML file of custom style fields")
    ap.add_argument("--media-type", default=None, help="Media type used when the suffix is not recognized")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s - %(levelname)s - %(message)s")

    if args.output and len(args.inputs) > 1:
        log.warning("Ignoring --output for %d inputs; writing next to each input", len(args.inputs))

    try:
        style = load_style(args.style)
    except (OSError, ValueError, yaml.YAMLError) as e:
        log.error("Failed to load style file %s: %s", args.style, str(e))
        return 1

    errors = []
    written = 0
    for input_path in args.inputs:
        try:
            with open(input_path, "rb") as f:
                data = f.read()
            request = GraphRequest(
                title=args.title or os.path.basename(input_path),
                file_name=os.path.basename(input_path),
                file_data=data,
                scope=args.scope,
                notation=args.notation,
                collapse_edges="collapseTrue" if args.collapse else "collapseFalse",
                reasoning="reasoningTrue" if args.reasoning else "reasoningFalse",
                media_type=args.media_type,
                style=style,
            )
            graphml = generate_graphml(request)
            out_path = output_path(input_path, args.output, len(args.inputs) == 1)
            with open(out_path, "w", encoding="utf-8") as f:
                f.write(graphml)
            written += 1
            log.info("Wrote %s", out_path)
        except (OSError, OntographError) as e:
            errors.append(f"{input_path}: {str(e)}")
            log.error("Failed to draw %s: %s", input_path, str(e))

    log.info("Total written diagrams: %d", written)
    if errors:
        log.error("Errors occurred:")
        for err in errors:
            log.error(err)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
