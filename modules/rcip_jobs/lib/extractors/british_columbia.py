# modules/rcip_jobs/lib/extractors/british_columbia.py
from __future__ import annotations

from ..models import ScrapeTarget
from .cards import CardExtractor
from .registry import register

VERNON = ScrapeTarget(
    community="Vernon",
    province="BC",
    base_url="https://www.vernon.ca/immigration/rural-and-northern-immigration-pilot/",
    default_location="Vernon, BC",
    card=".job-opportunity",
    title=".job-title",
    description=".description",
    employer=".employer",
    location=".location",
    salary=".salary",
    posted=".date",
    source_link="a.apply",
    employer_link="a.employer-site",
)

WEST_KOOTENAY = ScrapeTarget(
    community="West Kootenay",
    province="BC",
    base_url="https://wk-rnip.ca/jobs/",
    default_location="West Kootenay, BC",
    card=".job-posting",
    title=".position",
    description=".description",
    employer=".employer",
    location=".location",
    salary=".salary",
    posted=".posted",
    source_link="a.apply-now",
    employer_link="a.company-website",
    next_page="a.next.page-numbers",
    max_pages=5,
)

for _target in (VERNON, WEST_KOOTENAY):
    register(CardExtractor(_target))
