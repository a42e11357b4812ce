from wasteintel.models.base import Base
from wasteintel.models.company import Company
from wasteintel.models.company_data_template import CompanyDataTemplate
from wasteintel.models.company_metric import CompanyMetric
from wasteintel.models.organization import Organization
from wasteintel.models.user_profile import UserProfile
from wasteintel.models.waste_stream import WasteStream

__all__ = [
    "Base",
    "Company",
    "CompanyDataTemplate",
    "CompanyMetric",
    "Organization",
    "UserProfile",
    "WasteStream",
]
