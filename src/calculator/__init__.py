from .errors import EstimateError, InvalidGeometryError, MissingSelectionError, ConfigurationError
from .material_calculator import MaterialCalculator, Dimensions, TileQuantity, format_material_report
from .cost_estimator import CostEstimator, PricingDatabase, PricingContext, RateConfig, PlumbingFlatFee, FixtureEntry, FixtureCatalog, FixtureCategory, BrandEntry, BrandCatalog, CustomerDetails, SelectionSet, EstimateBreakdown, ProjectType, PlumbingRequirement, Timeline, compare_timelines, format_cost_report
from .wizard import WizardState, WizardStep, validate_customer
from .submission import SubmissionRecord, SubmissionStatus, build_submission, summarize_submissions
