"""
Migration driver.

Applies the registered rules to configuration files and state files:

1. every rule's text preprocessing runs over the raw file
2. the file is parsed into a Document
3. each resource/data block with a rule is transformed, and the returned
   blocks are spliced into the document
4. the document is rendered and checked with python-hcl2

State files are walked resource by resource; every instance goes through
its rule's state transform and the resource type is renamed to the target
type. Parsed configuration bodies are kept on the Context so that state
transforms can tell which attributes the user actually wrote.
"""

import copy
import json
import logging
import os
import shutil
from typing import Any, Dict, List, Optional

from tqdm import tqdm

from engine.diagnostics import Context
from engine.exceptions import HclParseError, MigrationError, StateFileError
from engine.hcl.blocks import resource_address, resource_type
from engine.hcl.document import Block, Document
from engine.registry import Registry
from engine.rules.base import STATE_TYPE_KEY
from engine.settings import Settings
from engine.utils.string_utils import format_address

logger = logging.getLogger(__name__)

RESOURCE_BLOCK_TYPES = ("resource", "data")
SKIPPED_DIRECTORIES = (".terraform", ".git")
BACKUP_SUFFIX = ".backup"


# Configuration


def migrate_config_text(
    ctx: Context, text: str, registry: Registry, settings: Optional[Settings] = None
) -> str:
    """
    Migrate the text of one configuration file.

    Args:
        ctx: Run context receiving diagnostics and parsed resource bodies
        text: Configuration source
        registry: Rules to apply
        settings: Resource filter and output validation switch

    Returns:
        Migrated text. On a parse failure the input is returned unchanged
        and an error diagnostic is recorded.
    """
    settings = settings or Settings()
    for rule in registry.unique_rules():
        if any(settings.wants(name) for name in rule.source_types()):
            text = rule.preprocess(text)

    try:
        doc = Document.parse(text)
    except HclParseError as e:
        logger.warning("Cannot parse %s: %s", ctx.filename, e)
        ctx.error("Configuration could not be parsed; file left unchanged", str(e), ctx.filename)
        return text

    for block in list(doc.blocks()):
        if block.type not in RESOURCE_BLOCK_TYPES:
            continue
        type_name = resource_type(block)
        rule = registry.lookup(type_name) if type_name else None
        if rule is None or not settings.wants(type_name):
            continue
        _transform_block(ctx, doc, block, rule)

    rendered = doc.render()
    if settings.validate_output:
        try:
            doc.validate()
        except HclParseError as e:
            ctx.error("Migrated configuration failed validation", str(e), ctx.filename)
    return rendered


def _transform_block(ctx: Context, doc: Document, block: Block, rule) -> None:
    address = resource_address(block)
    ctx.config_bodies[address] = copy.deepcopy(block.body)
    snapshot = copy.deepcopy(block)
    try:
        result = rule.transform_config(ctx, block)
    except Exception as e:
        # Rules edit the block in place; put back the block as written.
        logger.warning("Rule %s failed on %s: %s", type(rule).__name__, address, e)
        logger.debug("Rule failure", exc_info=True)
        ctx.error(f"Could not migrate {address}", str(e), address)
        doc.body.replace(block, [snapshot])
        return
    if result.remove_original:
        doc.body.replace(block, result.blocks)
    else:
        extra = [b for b in result.blocks if b is not block]
        if extra:
            doc.body.insert_after(block, extra)
    logger.debug("Migrated %s into %d block(s)", address, len(result.blocks))


def find_config_files(directory: str, recursive: bool = False) -> List[str]:
    """
    List ``.tf`` files in a directory.

    Raises:
        MigrationError: If ``directory`` does not exist
    """
    if not os.path.isdir(directory):
        raise MigrationError("Configuration directory not found", {"path": directory})
    paths: List[str] = []
    for root, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d not in SKIPPED_DIRECTORIES)
        paths.extend(os.path.join(root, f) for f in sorted(files) if f.endswith(".tf"))
        if not recursive:
            break
    return paths


def migrate_config_file(
    ctx: Context,
    path: str,
    registry: Registry,
    settings: Optional[Settings] = None,
    dry_run: bool = False,
) -> bool:
    """
    Migrate one configuration file in place.

    Returns:
        True if the migrated text differs from the original
    """
    settings = settings or Settings()
    ctx.filename = path
    with open(path, "r", encoding="utf8") as f:
        original = f.read()
    migrated = migrate_config_text(ctx, original, registry, settings)
    changed = migrated != original
    if changed and not dry_run:
        if settings.backup:
            shutil.copy2(path, path + BACKUP_SUFFIX)
        with open(path, "w", encoding="utf8") as f:
            f.write(migrated)
        logger.debug("Wrote %s", path)
    return changed


def migrate_config_directory(
    ctx: Context,
    directory: str,
    registry: Registry,
    settings: Optional[Settings] = None,
    dry_run: bool = False,
    progress: bool = True,
) -> List[str]:
    """
    Migrate every ``.tf`` file under ``directory``.

    Returns:
        Paths of files whose content changed (or would change on a dry run)
    """
    settings = settings or Settings()
    paths = find_config_files(directory, settings.recursive)
    changed = []
    for path in tqdm(paths, desc="Configuration", unit="file", disable=not progress, leave=False):
        if migrate_config_file(ctx, path, registry, settings, dry_run):
            changed.append(path)
    return changed


# State


def migrate_state(
    ctx: Context,
    state: Dict[str, Any],
    registry: Registry,
    settings: Optional[Settings] = None,
    progress: bool = False,
) -> Dict[str, Any]:
    """
    Migrate a full state document.

    Resources with a rule have every instance transformed (unless the rule
    leaves state to the provider) and their type renamed. Data sources
    without a rule are dropped; Terraform re-reads them on the next plan.

    Returns:
        The state document, edited in place
    """
    settings = settings or Settings()
    resources = state.get("resources")
    if not isinstance(resources, list):
        return state
    kept = []
    for resource in tqdm(resources, desc="State", unit="resource", disable=not progress, leave=False):
        if not isinstance(resource, dict):
            kept.append(resource)
            continue
        type_name = resource.get("type", "")
        rule = registry.lookup(type_name)
        if rule is None:
            if resource.get("mode") == "data":
                logger.debug("Dropping data source %s from state", type_name)
                continue
            kept.append(resource)
            continue
        if settings.wants(type_name):
            _migrate_resource(ctx, resource, rule)
        kept.append(resource)
    state["resources"] = kept
    return state


def _migrate_resource(ctx: Context, resource: Dict[str, Any], rule) -> None:
    type_name = resource.get("type", "")
    name = resource.get("name", "")
    path = format_address(type_name, name)
    if resource.get("mode") == "data":
        path = "data." + path
    target = rule.target_type()
    if not rule.uses_external_state_upgrader():
        instances = resource.get("instances") or []
        snapshot = copy.deepcopy(instances)
        for index, instance in enumerate(instances):
            if not isinstance(instance, dict):
                continue
            try:
                instances[index] = rule.transform_state(ctx, instance, path, name)
            except Exception as e:
                # The resource keeps its v4 type and instances as written.
                logger.warning("Rule %s failed on %s: %s", type(rule).__name__, path, e)
                logger.debug("Rule failure", exc_info=True)
                ctx.error(f"Could not migrate state of {path}", str(e), path)
                ctx.metadata.pop(STATE_TYPE_KEY.format(name), None)
                instances[:] = snapshot
                return
        target = ctx.metadata.pop(STATE_TYPE_KEY.format(name), target)
    resource["type"] = target
    logger.debug("Migrated state of %s to %s", path, target)


def read_state_file(path: str) -> Dict[str, Any]:
    """
    Load a state file.

    Raises:
        StateFileError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(path, "r", encoding="utf8") as f:
            state = json.load(f)
    except OSError as e:
        raise StateFileError("Cannot read state file", {"path": path, "error": str(e)}) from e
    except ValueError as e:
        raise StateFileError("State file is not valid JSON", {"path": path, "error": str(e)}) from e
    if not isinstance(state, dict):
        raise StateFileError("State file must contain a JSON object", {"path": path})
    return state


def write_state_file(path: str, state: Dict[str, Any]) -> None:
    try:
        with open(path, "w", encoding="utf8") as f:
            json.dump(state, f, indent=2)
            f.write("\n")
    except OSError as e:
        raise StateFileError("Cannot write state file", {"path": path, "error": str(e)}) from e


def migrate_state_file(
    ctx: Context,
    path: str,
    registry: Registry,
    settings: Optional[Settings] = None,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """
    Migrate a state file in place, keeping a ``.backup`` copy.

    Returns:
        The migrated state document

    Raises:
        StateFileError: If the file cannot be read or written
    """
    settings = settings or Settings()
    ctx.filename = path
    state = read_state_file(path)
    migrated = migrate_state(ctx, state, registry, settings)
    if not dry_run:
        if settings.backup:
            shutil.copy2(path, path + BACKUP_SUFFIX)
        write_state_file(path, migrated)
    return migrated
