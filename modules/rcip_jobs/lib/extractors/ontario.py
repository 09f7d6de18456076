# modules/rcip_jobs/lib/extractors/ontario.py
from __future__ import annotations

from ..models import ScrapeTarget
from .cards import CardExtractor
from .registry import register

THUNDER_BAY = ScrapeTarget(
    community="Thunder Bay",
    province="ON",
    base_url="https://www.gotothunderbay.ca/en/immigration/rural-and-northern-immigration-pilot.aspx",
    default_location="Thunder Bay, ON",
    card=".job-posting",
    title=".job-title",
    description=".job-description",
    employer=".employer-name",
    location=".location",
    salary=".salary",
    posted=".date-posted",
    source_link="a.job-link",
    employer_link="a.employer-website",
    # Thunder Bay flags remote work in its own badge rather than in the text.
    remote=".remote",
)

NORTH_BAY = ScrapeTarget(
    community="North Bay",
    province="ON",
    base_url="https://www.northbay.ca/immigration/rural-and-northern-immigration-pilot/",
    default_location="North Bay, ON",
    card=".rnip-job-posting",
    title=".position-title",
    description=".position-description",
    employer=".company-name",
    location=".job-location",
    salary=".compensation",
    posted=".posting-date",
    source_link="a.apply-link",
    employer_link="a.company-website",
)

SUDBURY = ScrapeTarget(
    community="Sudbury",
    province="ON",
    base_url="https://www.greatersudbury.ca/live/immigration-and-newcomers/rural-and-northern-immigration-pilot/",
    default_location="Sudbury, ON",
    card=".job-listing",
    title=".job-title",
    description=".job-description",
    employer=".employer",
    location=".location",
    salary=".salary",
    posted=".date",
    source_link="a.job-link",
    employer_link="a.employer-link",
)

TIMMINS = ScrapeTarget(
    community="Timmins",
    province="ON",
    base_url="https://www.timminsedc.com/immigration/rural-and-northern-immigration-pilot/",
    default_location="Timmins, ON",
    card=".rnip-position",
    title=".position-name",
    description=".position-details",
    employer=".company",
    location=".job-location",
    salary=".salary-range",
    posted=".post-date",
    source_link="a.apply-now",
    employer_link="a.company-site",
)

SAULT_STE_MARIE = ScrapeTarget(
    community="Sault Ste. Marie",
    province="ON",
    base_url="https://welcometossm.com/rural-and-northern-immigration-pilot/",
    default_location="Sault Ste. Marie, ON",
    card=".rnip-job",
    title=".position-title",
    description=".job-description",
    employer=".employer-name",
    location=".location",
    salary=".compensation",
    posted=".posted-date",
    source_link="a.apply-link",
    employer_link="a.employer-website",
)

for _target in (THUNDER_BAY, NORTH_BAY, SUDBURY, TIMMINS, SAULT_STE_MARIE):
    register(CardExtractor(_target))
