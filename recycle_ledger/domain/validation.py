"""Completion submission validation - runs before any ledger access"""

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from recycle_ledger.domain.exceptions import ValidationError
from recycle_ledger.domain.models import CompletionSubmission, MaterialEntry, MaterialQuantity, MaterialType

_url_adapter = TypeAdapter(HttpUrl)


@dataclass(frozen=True)
class CompletionPolicy:
    """Bounds applied to completion submissions"""

    reconciliation_tolerance: Optional[float] = 0.05
    max_photos: int = 10
    max_total_weight_kg: float = 1000.0
    max_material_qty_kg: float = 500.0
    max_materials: int = 10
    max_containers: int = 50
    min_observation_length: int = 10
    max_observation_length: int = 1000

    @classmethod
    def from_settings(cls, settings) -> "CompletionPolicy":
        return cls(
            reconciliation_tolerance=settings.reconciliation_tolerance,
            max_photos=settings.max_photos,
            max_total_weight_kg=settings.max_total_weight_kg,
            max_material_qty_kg=settings.max_material_qty_kg,
            max_materials=settings.max_materials,
            max_containers=settings.max_containers,
            min_observation_length=settings.min_observation_length,
            max_observation_length=settings.max_observation_length,
        )


def parse_material_type(value: str) -> MaterialType:
    """Case-insensitive lookup of a material type tag"""
    try:
        return MaterialType(value.strip().lower())
    except (ValueError, AttributeError):
        valid = ", ".join(m.value for m in MaterialType)
        raise ValidationError(f"Unknown material type '{value}'. Valid types: {valid}")


def _is_finite_number(value) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _has_at_most_two_decimals(value: float) -> bool:
    return Decimal(str(value)).as_tuple().exponent >= -2


def _validate_photos(photos: Sequence[str], policy: CompletionPolicy) -> List[str]:
    errors = []
    if not photos:
        errors.append("At least one evidence photo is required")
    elif len(photos) > policy.max_photos:
        errors.append(f"No more than {policy.max_photos} photos are allowed")

    for index, photo in enumerate(photos or [], start=1):
        if not isinstance(photo, str) or not photo.strip():
            errors.append(f"Photo {index} must be a non-empty URL")
            continue
        try:
            _url_adapter.validate_python(photo)
        except PydanticValidationError:
            errors.append(f"Photo {index} is not a valid URL")
    return errors


def _validate_materials(
    materials: Sequence[MaterialEntry],
    policy: CompletionPolicy,
) -> Tuple[List[str], List[MaterialQuantity]]:
    errors: List[str] = []
    parsed: List[MaterialQuantity] = []

    if not materials:
        return ["At least one material entry is required"], parsed
    if len(materials) > policy.max_materials:
        errors.append(f"No more than {policy.max_materials} material entries are allowed")

    seen = set()
    for index, entry in enumerate(materials, start=1):
        qty_kg = entry.qty_kg
        try:
            material_type = parse_material_type(entry.type)
        except ValidationError as e:
            errors.extend(f"Material {index}: {detail}" for detail in e.details)
            continue

        if material_type in seen:
            errors.append(f"Material type '{material_type.value}' is duplicated")
            continue
        seen.add(material_type)

        if not _is_finite_number(qty_kg):
            errors.append(f"Material {index} quantity must be a finite number")
            continue
        if qty_kg <= 0:
            errors.append(f"Material {index} quantity must be greater than 0")
            continue
        if qty_kg > policy.max_material_qty_kg:
            errors.append(f"Material {index} quantity cannot exceed {policy.max_material_qty_kg} kg")
            continue
        if not _has_at_most_two_decimals(qty_kg):
            errors.append(f"Material {index} quantity cannot have more than 2 decimals")
            continue

        parsed.append(MaterialQuantity(type=material_type, qty_kg=qty_kg))

    return errors, parsed


def validate_completion_submission(
    submission: CompletionSubmission,
    policy: CompletionPolicy = CompletionPolicy(),
) -> List[MaterialQuantity]:
    """
    Validate a completion submission and return its normalized materials.

    Material types are matched case-insensitively, so "Plastic" and "plastic"
    count as the same type for duplicate detection.

    Raises:
        ValidationError: with every problem found, before any storage access
    """
    errors = _validate_photos(submission.photos, policy)

    total_weight_kg = submission.total_weight_kg
    weight_ok = _is_finite_number(total_weight_kg) and total_weight_kg > 0
    if not _is_finite_number(total_weight_kg):
        errors.append("Total weight must be a finite number")
    elif not weight_ok:
        errors.append("Total weight must be greater than 0")
    elif total_weight_kg > policy.max_total_weight_kg:
        errors.append(f"Total weight cannot exceed {policy.max_total_weight_kg} kg")

    material_errors, parsed = _validate_materials(submission.materials, policy)
    errors.extend(material_errors)

    # Reconcile only when every entry parsed, otherwise the sum is meaningless
    if policy.reconciliation_tolerance is not None and weight_ok and not material_errors:
        declared = Decimal(str(total_weight_kg))
        summed = sum((Decimal(str(m.qty_kg)) for m in parsed), Decimal(0))
        if abs(summed - declared) > declared * Decimal(str(policy.reconciliation_tolerance)):
            errors.append(
                f"Sum of material quantities ({summed} kg) does not match total weight ({declared} kg)"
            )

    container_count = submission.container_count
    if isinstance(container_count, bool) or not isinstance(container_count, int):
        errors.append("Container count must be an integer")
    elif container_count < 1:
        errors.append("At least 1 container is required")
    elif container_count > policy.max_containers:
        errors.append(f"No more than {policy.max_containers} containers are allowed")

    observations = submission.observations
    if not isinstance(observations, str) or not observations.strip():
        errors.append("Observations are required")
    elif len(observations.strip()) < policy.min_observation_length:
        errors.append(f"Observations must be at least {policy.min_observation_length} characters")
    elif len(observations) > policy.max_observation_length:
        errors.append(f"Observations cannot exceed {policy.max_observation_length} characters")

    if errors:
        raise ValidationError(errors)

    return parsed
