from pydantic import ConfigDict, Field, field_validator, model_validator

from portfolio.schemas.base import CamelModel


class AboutStat(CamelModel):
    value: str
    label: str


class AboutHighlight(CamelModel):
    title: str
    description: str = ""


DEFAULT_STATS = [
    AboutStat(value="5+", label="Years Experience"),
    AboutStat(value="11+", label="Certifications"),
    AboutStat(value="3", label="Cloud Platforms"),
    AboutStat(value="50+", label="Projects Delivered"),
]

DEFAULT_HIGHLIGHTS = [
    AboutHighlight(
        title="Cloud Architecture",
        description="Scalable solutions across AWS, Azure and GCP.",
    ),
    AboutHighlight(
        title="Infrastructure as Code",
        description="Terraform, CloudFormation and Ansible automation.",
    ),
    AboutHighlight(
        title="DevOps Practice",
        description="CI/CD pipelines, containers and modern deployment strategies.",
    ),
]


class AboutDocument(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    last_updated: str | None = None
    section_title: str = Field(min_length=1)
    subtitle: str = Field(min_length=1)
    main_title: str = Field(min_length=1)
    paragraphs: list[str]
    stats: list[AboutStat] | None = None
    highlights: list[AboutHighlight] | None = None

    @field_validator("paragraphs")
    @classmethod
    def drop_blank_paragraphs(cls, value: list[str]) -> list[str]:
        return [paragraph for paragraph in value if paragraph]

    @model_validator(mode="after")
    def fill_list_defaults(self) -> "AboutDocument":
        if self.stats is None:
            self.stats = [stat.model_copy() for stat in DEFAULT_STATS]
        if self.highlights is None:
            self.highlights = [highlight.model_copy() for highlight in DEFAULT_HIGHLIGHTS]
        return self


def default_about() -> AboutDocument:
    return AboutDocument(
        section_title="About Me",
        subtitle="A Cloud DevOps engineer building robust, scalable infrastructure and automated workflows.",
        main_title="Transforming Ideas into Infrastructure",
        paragraphs=[
            "I design automated cloud platforms that keep delivery fast and operations calm.",
            "My work centres on Infrastructure as Code, containers and continuous delivery pipelines.",
        ],
    )


class AboutUpdateOut(CamelModel):
    success: bool = True
    message: str
    data: AboutDocument
