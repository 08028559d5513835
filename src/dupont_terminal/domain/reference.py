"""Static reference data: the analysed universe and metric definitions.

``COMPANIES`` defines both the universe and the iteration order used by the
batch pre-cache and export workflows.  It is built once at import time and
never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass

from .values import Company

# fmt: off
COMPANIES: tuple[Company, ...] = (
    Company("AAL", "Anglo American", "Mining", "angloamerican.com"),
    Company("ABF", "Associated British Foods", "Food Producers", "abf.co.uk"),
    Company("ADM", "Admiral Group", "Non-life Insurance", "admiralgroup.co.uk"),
    Company("AHT", "Ashtead Group", "Support Services", "ashtead-group.com"),
    Company("ANTO", "Antofagasta", "Mining", "antofagasta.co.uk"),
    Company("AZN", "AstraZeneca", "Pharmaceuticals & Biotechnology", "astrazeneca.com"),
    Company("BA", "BAE Systems", "Aerospace & Defence", "baesystems.com"),
    Company("BARC", "Barclays", "Banks", "barclays.co.uk"),
    Company("BATS", "British American Tobacco", "Tobacco", "bat.com"),
    Company("BDEV", "Barratt Developments", "Household Goods & Home Construction", "barrattdevelopments.co.uk"),
    Company("BEZ", "Beazley", "Non-life Insurance", "beazley.com"),
    Company("BKIR", "Bank of Ireland Group", "Banks", "bankofireland.com"),
    Company("BLND", "British Land Company", "Real Estate Investment Trusts", "britishland.com"),
    Company("BNE", "B&M European Value Retail", "General Retailers", "bmstores.co.uk"),
    Company("BP", "BP", "Oil & Gas Producers", "bp.com"),
    Company("BRBY", "Burberry Group", "Personal Goods", "burberryplc.com"),
    Company("BT-A", "BT Group", "Fixed Line Telecommunications", "bt.com"),
    Company("CCH", "Coca-Cola HBC", "Beverages", "coca-colahellenic.com"),
    Company("CPG", "Compass Group", "Support Services", "compass-group.com"),
    Company("CRH", "CRH", "Construction & Materials", "crh.com"),
    Company("CRDA", "Croda International", "Chemicals", "croda.com"),
    Company("DCC", "DCC", "Support Services", "dcc.ie"),
    Company("DGE", "Diageo", "Beverages", "diageo.com"),
    Company("ENT", "Entain", "Travel & Leisure", "entaingroup.com"),
    Company("EXPN", "Experian", "Support Services", "experianplc.com"),
    Company("FCTR", "F&C Investment Trust", "Equity Investment Instruments", "fandc.com"),
    Company("FLTR", "Flutter Entertainment", "Travel & Leisure", "flutter.com"),
    Company("FRAS", "Frasers Group", "General Retailers", "frasers.group"),
    Company("FRES", "Fresnillo", "Mining", "fresnilloplc.com"),
    Company("GLEN", "Glencore", "Mining", "glencore.com"),
    Company("GSK", "GSK", "Pharmaceuticals & Biotechnology", "gsk.com"),
    Company("GTO", "Greencore Group", "Food Producers", "greencore.com"),
    Company("HLMA", "Halma", "Electronic & Electrical Equipment", "halma.com"),
    Company("HLN", "Haleon", "Personal Goods", "haleon.com"),
    Company("HSBA", "HSBC Holdings", "Banks", "hsbc.com"),
    Company("IAG", "International Consolidated Airlines Group", "Travel & Leisure", "iairgroup.com"),
    Company("IHG", "InterContinental Hotels Group", "Travel & Leisure", "ihgplc.com"),
    Company("III", "3i Group", "Financial Services", "3i.com"),
    Company("IMT", "Imperial Brands", "Tobacco", "imperialbrandsplc.com"),
    Company("INF", "Informa", "Media", "informa.com"),
    Company("IMI", "IMI", "Industrial Engineering", "imiplc.com"),
    Company("ITRK", "Intertek Group", "Support Services", "intertek.com"),
    Company("JD", "JD Sports Fashion", "General Retailers", "jdplc.com"),
    Company("JMAT", "Johnson Matthey", "Chemicals", "matthey.com"),
    Company("KGF", "Kingfisher", "General Retailers", "kingfisher.com"),
    Company("LAND", "Land Securities Group", "Real Estate Investment Trusts", "landsec.com"),
    Company("LGEN", "Legal & General Group", "Life Insurance", "legalandgeneralgroup.com"),
    Company("LLOY", "Lloyds Banking Group", "Banks", "lloydsbankinggroup.com"),
    Company("LSEG", "London Stock Exchange Group", "Financial Services", "lseg.com"),
    Company("MNG", "M&G", "Financial Services", "mandg.com"),
    Company("MKS", "Marks & Spencer Group", "General Retailers", "marksandspencer.com"),
    Company("MRO", "Melrose Industries", "Industrial Engineering", "melroseplc.com"),
    Company("MRL", "Merlin Entertainments", "Travel & Leisure", "merlinentertainments.biz"),
    Company("NG", "National Grid", "Gas, Water & Multiutilities", "nationalgrid.com"),
    Company("NWG", "NatWest Group", "Banks", "natwestgroup.com"),
    Company("NEX", "National Express Group", "Travel & Leisure", "nationalexpressgroup.com"),
    Company("OCDO", "Ocado Group", "Food & Drug Retailers", "ocadogroup.com"),
    Company("PEST", "Rentokil Initial", "Support Services", "rentokil-initial.com"),
    Company("PHNX", "Phoenix Group Holdings", "Life Insurance", "thephoenixgroup.com"),
    Company("PRU", "Prudential", "Life Insurance", "prudentialplc.com"),
    Company("PSN", "Persimmon", "Household Goods & Home Construction", "persimmonhomes.com"),
    Company("PSON", "Pearson", "Media", "pearson.com"),
    Company("REL", "RELX", "Media", "relx.com"),
    Company("RKT", "Reckitt Benckiser Group", "Personal Goods", "reckitt.com"),
    Company("RIO", "Rio Tinto", "Mining", "riotinto.com"),
    Company("RR", "Rolls-Royce Holdings", "Aerospace & Defence", "rolls-royce.com"),
    Company("RS1", "RS Group", "Support Services", "rsgroup.com"),
    Company("SAB", "SABMiller", "Beverages", "sabmiller.com"),
    Company("SBRY", "J Sainsbury", "Food & Drug Retailers", "about.sainsburys.co.uk"),
    Company("SGE", "Sage Group", "Software & Computer Services", "sage.com"),
    Company("SGRO", "Segro", "Real Estate Investment Trusts", "segro.com"),
    Company("SHEL", "Shell", "Oil & Gas Producers", "shell.com"),
    Company("SMDS", "DS Smith", "General Industrials", "dssmith.com"),
    Company("SMIN", "Smiths Group", "General Industrials", "smiths.com"),
    Company("SMIT", "Smith & Nephew", "Health Care Equipment & Services", "smith-nephew.com"),
    Company("SN", "Sovereign Network Group", "Support Services", "sng.org.uk"),
    Company("SPX", "Spirax-Sarco Engineering", "Industrial Engineering", "spiraxsarcoengineering.com"),
    Company("SSE", "SSE", "Electricity", "sse.com"),
    Company("STAN", "Standard Chartered", "Banks", "sc.com"),
    Company("STJ", "St. James's Place", "Financial Services", "sjp.co.uk"),
    Company("TW", "Taylor Wimpey", "Household Goods & Home Construction", "taylorwimpey.co.uk"),
    Company("TSCO", "Tesco", "Food & Drug Retailers", "tescoplc.com"),
    Company("ULVR", "Unilever", "Personal Goods", "unilever.com"),
    Company("UNITE", "Unite Group", "Real Estate Investment Trusts", "unitegroup.com"),
    Company("VOD", "Vodafone Group", "Mobile Telecommunications", "vodafone.com"),
    Company("WEIR", "Weir Group", "Industrial Engineering", "global.weir"),
    Company("WTB", "Whitbread", "Travel & Leisure", "whitbread.co.uk"),
    Company("WPP", "WPP", "Media", "wpp.com"),
    Company("AAM", "abrdn", "Financial Services", "abrdn.com"),
    Company("AAF", "Airtel Africa", "Telecommunications", "airtel.africa"),
    Company("AUTO", "Auto Trader Group", "Media", "autotrader.co.uk"),
    Company("BME", "B&M European Value Retail", "General Retailers", "bmstores.co.uk"),
    Company("BKG", "Berkeley Group Holdings", "Household Goods & Home Construction", "berkeleygroup.co.uk"),
    Company("CONV", "ConvaTec Group", "Health Care Equipment & Services", "convatecgroup.com"),
    Company("DLG", "Direct Line Insurance Group", "Non-life Insurance", "directlinegroup.co.uk"),
    Company("EDV", "Endeavour Mining", "Mining", "endeavourmining.com"),
    Company("HIK", "Hikma Pharmaceuticals", "Pharmaceuticals & Biotechnology", "hikma.com"),
    Company("HOWD", "Howden Joinery Group", "Support Services", "howdenjoinerygroupplc.com"),
)
# fmt: on

YEARS: tuple[int, ...] = (2024, 2023, 2022, 2021, 2020)

_BY_SYMBOL: dict[str, Company] = {c.symbol: c for c in COMPANIES}


def find_company(symbol: str) -> Company | None:
    """Look up a constituent by ticker symbol (case-insensitive)."""
    return _BY_SYMBOL.get(symbol.strip().upper())


def search_companies(term: str) -> list[Company]:
    """Return constituents whose name or symbol contains *term*."""
    needle = term.strip().lower()
    if not needle:
        return list(COMPANIES)
    return [
        c for c in COMPANIES
        if needle in c.name.lower() or needle in c.symbol.lower()
    ]


@dataclass(frozen=True)
class MetricDefinition:
    """Label, formula and plain-language explanation of one metric."""

    label: str
    formula: str
    explanation: str
    source: str = ""

    @property
    def short_label(self) -> str:
        """The label without its parenthesised abbreviation."""
        return self.label.split(" (")[0]


METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    "roe": MetricDefinition(
        label="Return on Equity (ROE)",
        formula="Net Profit / Average Shareholder Equity",
        explanation=(
            "How much profit the company generates with the money "
            "shareholders have invested."
        ),
        source="Annual Report, Equity Attributable to Owners",
    ),
    "roa": MetricDefinition(
        label="Return on Assets (ROA)",
        formula="Net Profit / Average Total Assets",
        explanation="How profitable the company is relative to its total assets.",
        source="Annual Report, Total Assets & Net Income",
    ),
    "margin": MetricDefinition(
        label="Net Profit Margin",
        formula="Net Profit / Total Revenue",
        explanation=(
            "Share of revenue left after operating expenses, interest, taxes "
            "and preferred dividends."
        ),
        source="Income Statement",
    ),
    "turnover": MetricDefinition(
        label="Asset Turnover",
        formula="Total Revenue / Average Total Assets",
        explanation="Efficiency of the asset base at generating sales revenue.",
        source="Balance Sheet & Income Statement",
    ),
    "leverage": MetricDefinition(
        label="Financial Leverage (Equity Multiplier)",
        formula="Average Total Assets / Average Shareholder Equity",
        explanation=(
            "How much of the asset base is financed by shareholders; higher "
            "means more debt financing."
        ),
        source="Balance Sheet",
    ),
    "solvencyIndex": MetricDefinition(
        label="Solvency Index",
        formula="Composite of Quick, Current, and Cash Ratios",
        explanation="Ability to meet long-term obligations and short-term liquidity needs.",
        source="Notes to Financial Statements (Liquidity Risk)",
    ),
    "sentiment": MetricDefinition(
        label="NLP Sentiment Tone",
        formula="Dictionary-based Finance Net Tone Score",
        explanation="Ratio of positive to negative language in the annual report.",
        source="Strategic Report / CEO Statement",
    ),
    "fli": MetricDefinition(
        label="Forward Looking Information (FLI)",
        formula="Frequency of Future-Oriented Markers",
        explanation="Density of words like 'expect', 'will', 'guidance' and 'outlook'.",
        source="Outlook & Principal Risks Sections",
    ),
    "specificity": MetricDefinition(
        label="Information Specificity",
        formula="Entity Density & Numeric Intensity Index",
        explanation="Frequency of numbers, specific dates and named entities.",
        source="Operating Review / Segment Analysis",
    ),
    "sentenceLength": MetricDefinition(
        label="Sentence Length (Readability)",
        formula="Average Words Per Sentence",
        explanation="A proxy for reporting clarity.",
        source="Full Text Narrative",
    ),
    "depth": MetricDefinition(
        label="Syntactic Depth",
        formula="Average Clause Density / Parse Tree Depth",
        explanation="Structural complexity of the language used.",
        source="Corporate Governance / Risk Notes",
    ),
    "unfamiliarity": MetricDefinition(
        label="Jargon / Unfamiliarity",
        formula="TF-IDF Share of Low-Frequency Terms",
        explanation="Use of technical jargon or rare terms.",
        source="Key Accounting Estimates / Tax Notes",
    ),
}
