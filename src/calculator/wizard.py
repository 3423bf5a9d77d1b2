"""
Washroom Quote - Wizard State

Typed, step-by-step accumulation of the customer's choices. Each wizard
step has its own mutator; the finished draft converts into a SelectionSet
for the estimator.
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, Optional, Set

from .cost_estimator import (
    CustomerDetails,
    PlumbingRequirement,
    ProjectType,
    SelectionSet,
    Timeline,
)
from .errors import InvalidGeometryError, MissingSelectionError
from .material_calculator import DEFAULT_WALL_HEIGHT_FT, Dimensions


MAX_SIDE_FT = 100

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_DIGITS = 10


class WizardStep(IntEnum):
    PROJECT_TYPE = 1
    DIMENSIONS = 2
    ELECTRICAL = 3
    PLUMBING = 4
    ADDITIONAL_FIXTURES = 5
    TIMELINE = 6
    BRAND = 7
    CUSTOMER = 8
    RESULT = 9


def validate_customer(details: CustomerDetails) -> Dict[str, str]:
    """Return a field -> message map of problems; empty when the details are usable."""
    errors = {}
    for name in ("name", "email", "phone", "location"):
        if not (getattr(details, name) or "").strip():
            errors[name] = f"Please enter your {name}"

    if details.email and not EMAIL_PATTERN.match(details.email):
        errors["email"] = "Please enter a valid email address"

    if details.phone:
        digits = re.sub(r"\D", "", details.phone)
        if len(digits) != PHONE_DIGITS:
            errors["phone"] = f"Please enter a valid {PHONE_DIGITS}-digit phone number"

    return errors


@dataclass
class WizardState:
    """Mutable draft of one wizard run."""
    step: WizardStep = WizardStep.PROJECT_TYPE
    project_type: Optional[ProjectType] = None
    dimensions: Optional[Dimensions] = None
    electrical_fixture_ids: Set[str] = field(default_factory=set)
    plumbing_requirement: Optional[PlumbingRequirement] = None
    additional_fixture_ids: Set[str] = field(default_factory=set)
    timeline: Optional[Timeline] = None
    brand_id: Optional[str] = None
    customer: CustomerDetails = field(default_factory=CustomerDetails)

    # ------------------------------------------------------------------
    # Step mutators
    # ------------------------------------------------------------------

    def set_project_type(self, project_type) -> None:
        self.project_type = ProjectType(project_type)

    def set_dimensions(self, length: float, width: float, height: float = DEFAULT_WALL_HEIGHT_FT) -> None:
        """Set the floor dimensions; each side must be in (0, 100] feet."""
        for name, value in (("length", length), ("width", width)):
            if value is None or value <= 0 or value > MAX_SIDE_FT:
                raise InvalidGeometryError(name, value)
        self.dimensions = Dimensions(length=length, width=width, height=height).validate()

    def toggle_electrical_fixture(self, fixture_id: str) -> bool:
        """Flip a fixture's selection; returns whether it is now selected."""
        return self._toggle(self.electrical_fixture_ids, fixture_id)

    def set_plumbing(self, requirement) -> None:
        self.plumbing_requirement = PlumbingRequirement(requirement)

    def toggle_additional_fixture(self, fixture_id: str) -> bool:
        return self._toggle(self.additional_fixture_ids, fixture_id)

    def set_timeline(self, timeline) -> None:
        self.timeline = Timeline(timeline)

    def set_brand(self, brand_id: Optional[str]) -> None:
        self.brand_id = brand_id or None

    def set_customer(self, details: CustomerDetails) -> None:
        self.customer = details

    @staticmethod
    def _toggle(selected: Set[str], fixture_id: str) -> bool:
        if fixture_id in selected:
            selected.discard(fixture_id)
            return False
        selected.add(fixture_id)
        return True

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def is_step_valid(self, step: Optional[WizardStep] = None) -> bool:
        """Whether the given (default: current) step has what it needs to move on."""
        step = self.step if step is None else WizardStep(step)

        if step is WizardStep.PROJECT_TYPE:
            return self.project_type is not None
        if step is WizardStep.DIMENSIONS:
            return (
                self.dimensions is not None
                and self.dimensions.length > 0
                and self.dimensions.width > 0
            )
        if step is WizardStep.PLUMBING:
            return self.plumbing_requirement is not None
        if step is WizardStep.TIMELINE:
            return self.timeline is not None
        if step is WizardStep.BRAND:
            return self.brand_id is not None
        if step is WizardStep.CUSTOMER:
            return not validate_customer(self.customer)
        # Fixture steps are optional
        return True

    def next_step(self) -> WizardStep:
        if self.step < WizardStep.RESULT and self.is_step_valid():
            self.step = WizardStep(self.step + 1)
        return self.step

    def previous_step(self) -> WizardStep:
        if self.step > WizardStep.PROJECT_TYPE:
            self.step = WizardStep(self.step - 1)
        return self.step

    def reset(self) -> None:
        self.__init__()

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def to_selection_set(self) -> SelectionSet:
        """
        Freeze the draft into a SelectionSet.

        Raises:
            MissingSelectionError: dimensions, plumbing or timeline have not been chosen
        """
        if self.dimensions is None:
            raise MissingSelectionError("dimensions")
        if self.plumbing_requirement is None:
            raise MissingSelectionError("plumbing_requirement")
        if self.timeline is None:
            raise MissingSelectionError("timeline")

        return SelectionSet(
            project_type=self.project_type,
            dimensions=self.dimensions,
            electrical_fixture_ids=frozenset(self.electrical_fixture_ids),
            plumbing_requirement=self.plumbing_requirement,
            additional_fixture_ids=frozenset(self.additional_fixture_ids),
            timeline=self.timeline,
            brand_id=self.brand_id,
            customer=self.customer,
        )
