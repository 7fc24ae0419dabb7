from datetime import datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional


DocumentType = Literal["structured", "semi-structured", "narrative", "brief"]
SectionType = Literal[
    "client", "industry", "competitor", "source", "exclude", "schedule", "description", "unknown"
]
WarningLevel = Literal["error", "warning", "info"]
ParseQuality = Literal["high", "medium", "low"]

SOURCE_TIERS = ("tier1", "tier2", "tier3", "hand_search")


class Executive(BaseModel):
    name: str
    role: str = ""
    sentiment_policy: str = Field(default="", description="How coverage of this person should be handled")


class Competitor(BaseModel):
    name: str
    type: str = Field(default="direct", description="direct, indirect, or category")
    priority: int = Field(default=1, ge=1, description="1 = watch most closely")


class Contact(BaseModel):
    name: str
    email: str = ""
    role: str = ""


class SourceTiers(BaseModel):
    """Four priority buckets; order inside a tier is priority within the tier."""
    tier1: List[str] = Field(default_factory=list)
    tier2: List[str] = Field(default_factory=list)
    tier3: List[str] = Field(default_factory=list)
    hand_search: List[str] = Field(default_factory=list)

    def all_sources(self) -> List[str]:
        return [*self.tier1, *self.tier2, *self.tier3, *self.hand_search]


class BriefingInfo(BaseModel):
    schedule: str = ""
    audience: str = ""
    length: str = Field(default="", description="Length or frequency of the briefing")


class ClientProfile(BaseModel):
    """Parse target. Every field is always present, empty when nothing was found."""
    client_name: str = ""
    industry: str = ""
    products: List[str] = Field(default_factory=list)
    executives: List[Executive] = Field(default_factory=list)
    competitors: List[Competitor] = Field(default_factory=list)
    excluded_topics: List[str] = Field(default_factory=list)
    sources: SourceTiers = Field(default_factory=SourceTiers)
    briefing_info: BriefingInfo = Field(default_factory=BriefingInfo)
    contacts: List[Contact] = Field(default_factory=list)

    def competitor_names(self) -> List[str]:
        return [c.name for c in self.competitors]


class ExtractedEntities(BaseModel):
    organizations: List[str] = Field(default_factory=list)
    people: List[str] = Field(default_factory=list)
    emails: List[str] = Field(default_factory=list)
    urls: List[str] = Field(default_factory=list)
    times: List[str] = Field(default_factory=list)


class Section(BaseModel):
    header: Optional[str] = None
    start_offset: int = Field(..., ge=0)
    end_offset: int = Field(..., ge=0)
    raw_text: str
    classified_type: SectionType = "unknown"
    entities: ExtractedEntities = Field(default_factory=ExtractedEntities)
    extracted_metadata: Dict[str, str] = Field(
        default_factory=dict,
        description="Lower-cased label -> raw value for 'label: value' lines",
    )

    @property
    def body(self) -> str:
        """Section text without its header line."""
        if self.header and self.raw_text.lstrip().startswith(self.header):
            _, _, rest = self.raw_text.lstrip().partition("\n")
            return rest
        return self.raw_text


class DocumentStructure(BaseModel):
    sections: List[Section] = Field(default_factory=list)
    headers: List[str] = Field(default_factory=list)
    has_headers: bool = False
    has_bullets: bool = False
    has_numbering: bool = False
    line_count: int = 0
    avg_line_length: float = 0.0
    document_type: DocumentType = "brief"


class Confidence(BaseModel):
    overall: float = Field(default=0.0, ge=0.0, le=1.0)
    per_field: Dict[str, float] = Field(default_factory=dict)
    quality: ParseQuality = "low"


class ValidationIssue(BaseModel):
    field: str
    level: WarningLevel
    message: str
    suggestion: str = ""


class ValidationResult(BaseModel):
    is_valid: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
    score: float = Field(..., ge=0.0, le=1.0)


class ParseWarning(BaseModel):
    level: WarningLevel
    message: str
    suggestion: str = ""


class DocumentMetadata(BaseModel):
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    last_modified: Optional[datetime] = None


class ParseResult(BaseModel):
    data: ClientProfile
    confidence: Confidence
    document_type: DocumentType
    validation: ValidationResult
    warnings: List[ParseWarning] = Field(default_factory=list)
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
    from_cache: bool = False


class LearnedPattern(BaseModel):
    field: str
    label_text: str
    occurrence_count: int = 1
    first_seen: datetime
    last_seen: datetime


class TextParseRequest(BaseModel):
    text: str = Field(..., description="Raw client notes text")
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)
