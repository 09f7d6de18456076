# modules/rcip_jobs/lib/extractors/prairies.py
from __future__ import annotations

from ..models import ScrapeTarget
from .cards import CardExtractor
from .registry import register

MOOSE_JAW = ScrapeTarget(
    community="Moose Jaw",
    province="SK",
    base_url="https://moosejawrnip.ca/jobs/",
    default_location="Moose Jaw, SK",
    card=".job-listing",
    title=".job-title",
    description=".description",
    employer=".employer",
    location=".location",
    salary=".salary",
    posted=".date-posted",
    source_link="a.apply-button",
    employer_link="a.employer-link",
)

CLARESHOLM = ScrapeTarget(
    community="Claresholm",
    province="AB",
    base_url="https://claresholm.ca/rnip/",
    default_location="Claresholm, AB",
    card=".rnip-job",
    title=".position-title",
    description=".job-details",
    employer=".employer",
    location=".location",
    salary=".salary",
    posted=".post-date",
    source_link="a.apply",
    employer_link="a.employer-website",
)

BRANDON = ScrapeTarget(
    community="Brandon",
    province="MB",
    base_url="https://economicdevelopmentbrandon.com/rnip/",
    default_location="Brandon, MB",
    card=".job-posting",
    title=".job-title",
    description=".description",
    employer=".employer-name",
    location=".location",
    salary=".salary-info",
    posted=".post-date",
    source_link="a.apply-now",
    employer_link="a.employer-site",
)

ALTONA_RHINELAND = ScrapeTarget(
    community="Altona/Rhineland",
    province="MB",
    base_url="https://www.altona.ca/rnip/",
    default_location="Altona/Rhineland, MB",
    card=".job-opportunity",
    title=".position-title",
    description=".job-description",
    employer=".company-name",
    location=".location",
    salary=".salary-range",
    posted=".date",
    source_link="a.apply-link",
    employer_link="a.company-website",
)

for _target in (MOOSE_JAW, CLARESHOLM, BRANDON, ALTONA_RHINELAND):
    register(CardExtractor(_target))
