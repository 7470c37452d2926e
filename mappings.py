# Lookup tables for itinerary normalization (Airports, Airlines, Timezones, Cabins)
# Unknown codes are rendered as the bare code, never guessed.

AIRPORT_CODES = {
    # ===== EAST AFRICA (home market first) =====
    "JUB": "Juba, South Sudan", "EBB": "Entebbe, Uganda", "NBO": "Nairobi, Kenya",
    "WIL": "Nairobi Wilson, Kenya", "MBA": "Mombasa, Kenya", "KIS": "Kisumu, Kenya",
    "EDL": "Eldoret, Kenya", "ADD": "Addis Ababa, Ethiopia", "KGL": "Kigali, Rwanda",
    "DAR": "Dar es Salaam, Tanzania", "JRO": "Kilimanjaro, Tanzania", "ZNZ": "Zanzibar, Tanzania",
    "BJM": "Bujumbura, Burundi", "KRT": "Khartoum, Sudan", "PZU": "Port Sudan, Sudan",
    "MGQ": "Mogadishu, Somalia", "HGA": "Hargeisa, Somaliland", "JIB": "Djibouti, Djibouti",
    "ASM": "Asmara, Eritrea", "WUU": "Wau, South Sudan", "MAK": "Malakal, South Sudan",
    "RBX": "Rumbek, South Sudan", "FIH": "Kinshasa, DR Congo", "GOM": "Goma, DR Congo",

    # ===== REST OF AFRICA =====
    "JNB": "Johannesburg, South Africa", "CPT": "Cape Town, South Africa",
    "LOS": "Lagos, Nigeria", "ABV": "Abuja, Nigeria", "ACC": "Accra, Ghana",
    "CAI": "Cairo, Egypt", "CMN": "Casablanca, Morocco", "LUN": "Lusaka, Zambia",
    "HRE": "Harare, Zimbabwe", "LLW": "Lilongwe, Malawi", "MPM": "Maputo, Mozambique",
    "MRU": "Mauritius, Mauritius", "SEZ": "Mahe, Seychelles",

    # ===== MIDDLE EAST =====
    "DXB": "Dubai, United Arab Emirates", "AUH": "Abu Dhabi, United Arab Emirates",
    "SHJ": "Sharjah, United Arab Emirates", "DOH": "Doha, Qatar", "BAH": "Bahrain, Bahrain",
    "MCT": "Muscat, Oman", "RUH": "Riyadh, Saudi Arabia", "JED": "Jeddah, Saudi Arabia",
    "AMM": "Amman, Jordan", "TLV": "Tel Aviv, Israel", "KWI": "Kuwait City, Kuwait",

    # ===== EUROPE =====
    "LHR": "London Heathrow, United Kingdom", "LGW": "London Gatwick, United Kingdom",
    "CDG": "Paris, France", "AMS": "Amsterdam, Netherlands", "FRA": "Frankfurt, Germany",
    "MUC": "Munich, Germany", "BRU": "Brussels, Belgium", "ZRH": "Zurich, Switzerland",
    "GVA": "Geneva, Switzerland", "IST": "Istanbul, Turkey", "FCO": "Rome, Italy",
    "MAD": "Madrid, Spain", "LIS": "Lisbon, Portugal", "CPH": "Copenhagen, Denmark",
    "OSL": "Oslo, Norway", "ARN": "Stockholm, Sweden", "VIE": "Vienna, Austria",
    "ATH": "Athens, Greece", "DUB": "Dublin, Ireland", "MAN": "Manchester, United Kingdom",

    # ===== ASIA =====
    "DEL": "Delhi, India", "BOM": "Mumbai, India", "BLR": "Bengaluru, India",
    "CCU": "Kolkata, India", "SIN": "Singapore, Singapore", "BKK": "Bangkok, Thailand",
    "HKG": "Hong Kong, Hong Kong", "CAN": "Guangzhou, China", "PEK": "Beijing, China",
    "PVG": "Shanghai, China", "NRT": "Tokyo Narita, Japan", "HND": "Tokyo Haneda, Japan",
    "ICN": "Seoul, South Korea", "KUL": "Kuala Lumpur, Malaysia",

    # ===== AMERICAS =====
    "JFK": "New York JFK, United States", "EWR": "Newark, United States",
    "IAD": "Washington Dulles, United States", "ATL": "Atlanta, United States",
    "ORD": "Chicago, United States", "LAX": "Los Angeles, United States",
    "IAH": "Houston, United States", "YYZ": "Toronto, Canada", "GRU": "Sao Paulo, Brazil",
}

AIRLINE_CODES = {
    # ===== AFRICA =====
    "UR": "Uganda Airlines", "ET": "Ethiopian Airlines", "KQ": "Kenya Airways",
    "WB": "RwandAir", "TC": "Air Tanzania", "PW": "Precision Air", "JM": "Jambojet",
    "FZ": "flydubai", "MS": "EgyptAir", "SA": "South African Airways",
    "TM": "LAM Mozambique", "QC": "Camair-Co", "KP": "ASKY Airlines",
    "HM": "Air Seychelles", "MK": "Air Mauritius", "AT": "Royal Air Maroc",
    "P4": "Air Peace", "FN": "Fastjet", "5Z": "CemAir", "XY": "flynas",

    # ===== MIDDLE EAST =====
    "EK": "Emirates", "QR": "Qatar Airways", "EY": "Etihad Airways",
    "GF": "Gulf Air", "WY": "Oman Air", "SV": "Saudia", "RJ": "Royal Jordanian",
    "G9": "Air Arabia", "KU": "Kuwait Airways",

    # ===== EUROPE =====
    "TK": "Turkish Airlines", "BA": "British Airways", "LH": "Lufthansa",
    "AF": "Air France", "KL": "KLM", "SN": "Brussels Airlines", "LX": "SWISS",
    "IB": "Iberia", "TP": "TAP Air Portugal", "OS": "Austrian Airlines",
    "SK": "SAS", "AZ": "ITA Airways", "EI": "Aer Lingus", "VS": "Virgin Atlantic",

    # ===== ASIA / AMERICAS =====
    "AI": "Air India", "6E": "IndiGo", "SQ": "Singapore Airlines",
    "CX": "Cathay Pacific", "TG": "Thai Airways", "CZ": "China Southern Airlines",
    "MH": "Malaysia Airlines", "AA": "American Airlines", "DL": "Delta Air Lines",
    "UA": "United Airlines", "AC": "Air Canada",
}

AIRPORT_TZ_MAP = {
    "JUB": "Africa/Juba", "WUU": "Africa/Juba", "MAK": "Africa/Juba", "RBX": "Africa/Juba",
    "EBB": "Africa/Kampala", "NBO": "Africa/Nairobi", "WIL": "Africa/Nairobi",
    "MBA": "Africa/Nairobi", "KIS": "Africa/Nairobi", "EDL": "Africa/Nairobi",
    "ADD": "Africa/Addis_Ababa", "KGL": "Africa/Kigali", "DAR": "Africa/Dar_es_Salaam",
    "JRO": "Africa/Dar_es_Salaam", "ZNZ": "Africa/Dar_es_Salaam", "BJM": "Africa/Bujumbura",
    "KRT": "Africa/Khartoum", "PZU": "Africa/Khartoum", "MGQ": "Africa/Mogadishu",
    "HGA": "Africa/Mogadishu", "JIB": "Africa/Djibouti", "ASM": "Africa/Asmara",
    "FIH": "Africa/Kinshasa", "GOM": "Africa/Lubumbashi",
    "JNB": "Africa/Johannesburg", "CPT": "Africa/Johannesburg", "LOS": "Africa/Lagos",
    "ABV": "Africa/Lagos", "ACC": "Africa/Accra", "CAI": "Africa/Cairo",
    "CMN": "Africa/Casablanca", "LUN": "Africa/Lusaka", "HRE": "Africa/Harare",
    "LLW": "Africa/Blantyre", "MPM": "Africa/Maputo", "MRU": "Indian/Mauritius",
    "SEZ": "Indian/Mahe",
    "DXB": "Asia/Dubai", "AUH": "Asia/Dubai", "SHJ": "Asia/Dubai", "DOH": "Asia/Qatar",
    "BAH": "Asia/Bahrain", "MCT": "Asia/Muscat", "RUH": "Asia/Riyadh", "JED": "Asia/Riyadh",
    "AMM": "Asia/Amman", "TLV": "Asia/Jerusalem", "KWI": "Asia/Kuwait",
    "LHR": "Europe/London", "LGW": "Europe/London", "MAN": "Europe/London",
    "CDG": "Europe/Paris", "AMS": "Europe/Amsterdam", "FRA": "Europe/Berlin",
    "MUC": "Europe/Berlin", "BRU": "Europe/Brussels", "ZRH": "Europe/Zurich",
    "GVA": "Europe/Zurich", "IST": "Europe/Istanbul", "FCO": "Europe/Rome",
    "MAD": "Europe/Madrid", "LIS": "Europe/Lisbon", "CPH": "Europe/Copenhagen",
    "OSL": "Europe/Oslo", "ARN": "Europe/Stockholm", "VIE": "Europe/Vienna",
    "ATH": "Europe/Athens", "DUB": "Europe/Dublin",
    "DEL": "Asia/Kolkata", "BOM": "Asia/Kolkata", "BLR": "Asia/Kolkata", "CCU": "Asia/Kolkata",
    "SIN": "Asia/Singapore", "BKK": "Asia/Bangkok", "HKG": "Asia/Hong_Kong",
    "CAN": "Asia/Shanghai", "PEK": "Asia/Shanghai", "PVG": "Asia/Shanghai",
    "NRT": "Asia/Tokyo", "HND": "Asia/Tokyo", "ICN": "Asia/Seoul", "KUL": "Asia/Kuala_Lumpur",
    "JFK": "America/New_York", "EWR": "America/New_York", "IAD": "America/New_York",
    "ATL": "America/New_York", "ORD": "America/Chicago", "LAX": "America/Los_Angeles",
    "IAH": "America/Chicago", "YYZ": "America/Toronto", "GRU": "America/Sao_Paulo",
}

# Booking class letter -> cabin. Letters not listed here are Economy.
CABIN_CLASSES = {
    "F": "First", "A": "First",
    "J": "Business", "C": "Business",
    "W": "Premium Economy",
}
DEFAULT_CABIN = "Economy"

# GDS segment status codes
SEGMENT_STATUS = {
    "HK": "Confirmed", "KK": "Confirmed", "TK": "Confirmed", "RR": "Confirmed",
    "SS": "Confirmed", "DK": "Confirmed",
    "HL": "Waitlisted", "WL": "Waitlisted", "KL": "Waitlisted",
    "NN": "Requested", "HN": "Requested",
    "UC": "Unconfirmed", "UN": "Unconfirmed", "NO": "Unconfirmed",
}


def get_airport_name(code):
    """City/airport for an IATA code; the bare code when unknown"""
    code = (code or "").upper().strip()
    return AIRPORT_CODES.get(code, code)


def get_airline_name(code):
    """Airline name for an IATA code; the bare code when unknown"""
    code = (code or "").upper().strip()
    return AIRLINE_CODES.get(code, code)


def get_airport_timezone(code):
    """IANA timezone for an airport, or None when not mapped"""
    return AIRPORT_TZ_MAP.get((code or "").upper().strip())


def get_cabin_name(booking_class):
    """Single booking-class letter -> 'Business Class' etc."""
    letter = (booking_class or "").upper().strip()[:1]
    return f"{CABIN_CLASSES.get(letter, DEFAULT_CABIN)} Class"
