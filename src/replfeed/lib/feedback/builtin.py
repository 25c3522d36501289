"""Predefined feedback modes.

Each mode is a list of directives applied in order, in the same shape as the
format command: ``(field, template, *selectors)``. Later directives take
precedence, so general rules come first and special cases follow.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeAlias

from replfeed.lib.feedback.mode import TRUNCATION_FIELD, Mode
from replfeed.lib.feedback.selectors import parse_selectors

if TYPE_CHECKING:
    from replfeed.lib.feedback.registry import ModeRegistry

Directive: TypeAlias = tuple[str, ...]

DEFAULT_MODE = "normal"
BUILTIN_MODE_NAMES: tuple[str, ...] = ("verbose", "normal", "concise", "silent")

_DECORATIONS: tuple[Directive, ...] = (
    ("pre", "|  "),
    ("post", "%n"),
    ("errorpre", "|  "),
    ("errorpost", "%n"),
)

_TRUNCATION: tuple[Directive, ...] = (
    (TRUNCATION_FIELD, "80"),
    (TRUNCATION_FIELD, "1000", "varvalue,expression"),
)

_VERBOSE: tuple[Directive, ...] = (
    *_DECORATIONS,
    ("errorline", "{post}{pre}    {err}"),
    ("action", "created", "added-primary"),
    ("action", "modified", "modified-primary"),
    ("action", "replaced", "replaced-primary"),
    ("action", "overwrote", "overwrote-primary"),
    ("action", "dropped", "dropped-primary"),
    ("action", "  update created", "added-update"),
    ("action", "  update modified", "modified-update"),
    ("action", "  update replaced", "replaced-update"),
    ("action", "  update overwrote", "overwrote-update"),
    ("action", "  update dropped", "dropped-update"),
    (
        "until",
        ", however, it cannot be instantiated or its methods invoked until",
        "class,enum,interface,annotation-defined-primary",
    ),
    ("until", ", however, it cannot be invoked until", "method-defined-primary"),
    ("until", ", however, it cannot be referenced until", "vardecl,varinit-defined-primary"),
    (
        "until",
        ", however, it cannot be used until",
        "class,enum,interface,annotation,method,vardecl,varinit-notdefined-primary",
    ),
    (
        "until",
        " which cannot be instantiated or its methods invoked until",
        "class,enum,interface,annotation-defined-update",
    ),
    ("until", " which cannot be invoked until", "method-defined-update"),
    ("until", " which cannot be referenced until", "vardecl,varinit-defined-update"),
    (
        "until",
        " which cannot be used until",
        "class,enum,interface,annotation,method,vardecl,varinit-notdefined-update",
    ),
    ("unrerr", " {unresolved} is declared", "unresolved1-error0"),
    ("unrerr", " {unresolved} are declared", "unresolved2-error0"),
    ("unrerr", " this error is corrected: {errors}", "unresolved0-error1"),
    ("unrerr", " {unresolved} is declared and this error is corrected: {errors}", "unresolved1-error1"),
    ("unrerr", " {unresolved} are declared and this error is corrected: {errors}", "unresolved2-error1"),
    ("unrerr", " these errors are corrected: {errors}", "unresolved0-error2"),
    ("unrerr", " {unresolved} is declared and these errors are corrected: {errors}", "unresolved1-error2"),
    ("unrerr", " {unresolved} are declared and these errors are corrected: {errors}", "unresolved2-error2"),
    ("resolve", "{until}{unrerr}", "defined,notdefined-added,modified,replaced,used"),
    ("typeKind", "class", "class"),
    ("typeKind", "interface", "interface"),
    ("typeKind", "enum", "enum"),
    ("typeKind", "annotation interface", "annotation"),
    ("result", "{name} ==> {value}{post}", "added,modified,replaced-ok-primary"),
    (
        "display",
        "{result}{pre}created scratch variable {name} : {type}{post}",
        "expression-added,modified,replaced-primary",
    ),
    (
        "display",
        "{result}{pre}value of {name} : {type}{post}",
        "varvalue-added,modified,replaced-primary",
    ),
    ("display", "{result}{pre}assigned to {name} : {type}{post}", "assignment-primary"),
    (
        "display",
        "{result}{pre}{action} variable {name} : {type}{resolve}{post}",
        "varinit,vardecl",
    ),
    ("display", "{pre}{action} variable {name}{resolve}{post}", "vardecl,varinit-notdefined"),
    ("display", "{pre}{action} variable {name}{post}", "dropped-vardecl,varinit,expression"),
    (
        "display",
        "{pre}{action} variable {name}, reset to null{post}",
        "replaced-vardecl,varinit-ok-update",
    ),
    ("display", "{pre}{action} {typeKind} {name}{resolve}{post}", "class,interface,enum,annotation"),
    ("display", "{pre}{action} method {name}({type}){resolve}{post}", "method"),
    (
        "display",
        "{pre}attempted to use {typeKind} {name}{resolve}{post}",
        "used-class,interface,enum,annotation",
    ),
    ("display", "{pre}attempted to call method {name}({type}){resolve}{post}", "used-method"),
    *_TRUNCATION,
)

_NORMAL: tuple[Directive, ...] = (
    ("display", "", "added,modified,replaced,overwrote,dropped-update"),
    (
        "display",
        "{pre}{action} variable {name}, reset to null{post}",
        "replaced-vardecl,varinit-ok-update",
    ),
    (
        "display",
        "{result}",
        "added,modified,replaced-expression,varvalue,assignment,vardecl,varinit-ok-primary",
    ),
)

_CONCISE: tuple[Directive, ...] = (
    (
        "display",
        "",
        "class,interface,enum,annotation,method,assignment,varinit,vardecl-ok",
    ),
)

_SILENT: tuple[Directive, ...] = (
    *_DECORATIONS,
    *_TRUNCATION,
    ("display", ""),
)


def _apply(mode: Mode, directives: tuple[Directive, ...]) -> Mode:
    for field, template, *selectors in directives:
        for rule_filter in parse_selectors(selectors):
            mode.set(field, rule_filter, template)
    return mode


def install_builtin_modes(registry: ModeRegistry) -> None:
    """Register the predefined modes and mark them read-only."""

    verbose = _apply(registry.create("verbose"), _VERBOSE)
    verbose.set_prompts("\nreplfeed> ", "   ...> ")

    normal = _apply(registry.create("normal", verbose), _NORMAL)

    concise = _apply(registry.create("concise", normal), _CONCISE)
    concise.set_command_fluff(False)
    concise.set_prompts("replfeed> ", "   ...> ")

    silent = _apply(registry.create("silent"), _SILENT)
    silent.set_command_fluff(False)
    silent.set_prompts("-> ", ">> ")

    registry.mark_read_only()
