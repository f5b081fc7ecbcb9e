#!/usr/bin/env python3
"""Inspect a saved flow graph.

Loads a flow file written by FlowScene.save() into a headless scene with the
built-in models, lets data propagate once, and prints every node with its
outputs and every connection.

Usage:
    python main.py FLOW.json [--log-level DEBUG] [--settings PATH]
    python main.py --list-models
"""
import argparse
import sys

from PySide6.QtCore import QCoreApplication

from nodeflow import FlowScene, PortType, Settings, configure_logging
from nodeflow.builtin_models import default_registry


def describe(scene: FlowScene) -> str:
    lines = []
    for node in scene.nodes():
        pos = node.graphics_object.pos()
        outs = [node.model.out_data(i) for i in range(node.model.n_ports(PortType.OUT))]
        lines.append(f"{node.id}  {node.model.caption():<16} "
                     f"({pos.x():g}, {pos.y():g})  out={outs}")
    for c in scene.connections():
        conv = " [converted]" if c.get_type_converter() is not None else ""
        lines.append(f"  {c.get_node(PortType.OUT).model.name()}:{c.get_port_index(PortType.OUT)}"
                     f" -> {c.get_node(PortType.IN).model.name()}:{c.get_port_index(PortType.IN)}"
                     f"{conv}")
    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Inspect a saved flow graph')
    parser.add_argument('flow', nargs='?', help='Flow JSON file written by FlowScene.save()')
    parser.add_argument('--settings', type=str, default=None,
                        help='Settings JSON (default: ~/.config/nodeflow/settings.json)')
    parser.add_argument('--log-level', type=str, default=None,
                        help='Override the log level from the settings file')
    parser.add_argument('--list-models', action='store_true',
                        help='List the built-in models and exit')
    args = parser.parse_args(argv)

    settings = Settings(args.settings)
    configure_logging(args.log_level, settings)
    registry = default_registry()

    if args.list_models:
        for name in registry.registered_model_names():
            print(f"{registry.category_of(name):<10} {name}")
        return 0
    if not args.flow:
        parser.error('a flow file is required')

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])  # noqa: F841
    scene = FlowScene(registry, settings)
    scene.load(args.flow)
    print(describe(scene))
    return 0


if __name__ == '__main__':
    sys.exit(main())
