"""Permission catalog and default grants for the system roles."""

from konfi.core.hierarchy import ADMIN, KONFI, ORG_ADMIN, TEAMER

# (name, display_name, module)
CORE_PERMISSIONS = [
    ("badges.view", "Badges anzeigen", "badges"),
    ("badges.create", "Badges erstellen", "badges"),
    ("badges.edit", "Badges bearbeiten", "badges"),
    ("badges.delete", "Badges löschen", "badges"),
    ("badges.award", "Badges verleihen", "badges"),

    ("requests.view", "Anträge anzeigen", "requests"),
    ("requests.approve", "Anträge genehmigen", "requests"),
    ("requests.reject", "Anträge ablehnen", "requests"),
    ("requests.delete", "Anträge löschen", "requests"),

    ("konfis.view", "Konfis anzeigen", "konfis"),
    ("konfis.create", "Konfis anlegen", "konfis"),
    ("konfis.edit", "Konfis bearbeiten", "konfis"),
    ("konfis.delete", "Konfis löschen", "konfis"),
    ("konfis.reset_password", "Passwörter zurücksetzen", "konfis"),
    ("konfis.assign_points", "Punkte vergeben", "konfis"),

    ("activities.view", "Aktivitäten anzeigen", "activities"),
    ("activities.create", "Aktivitäten erstellen", "activities"),
    ("activities.edit", "Aktivitäten bearbeiten", "activities"),
    ("activities.delete", "Aktivitäten löschen", "activities"),

    ("events.view", "Events anzeigen", "events"),
    ("events.create", "Events erstellen", "events"),
    ("events.edit", "Events bearbeiten", "events"),
    ("events.delete", "Events löschen", "events"),

    ("jahrgaenge.view", "Jahrgänge anzeigen", "jahrgaenge"),
    ("jahrgaenge.create", "Jahrgänge erstellen", "jahrgaenge"),
    ("jahrgaenge.edit", "Jahrgänge bearbeiten", "jahrgaenge"),
    ("jahrgaenge.delete", "Jahrgänge löschen", "jahrgaenge"),

    ("settings.edit", "Einstellungen bearbeiten", "settings"),

    ("admin.users.view", "Benutzer anzeigen", "admin"),
    ("admin.users.create", "Benutzer erstellen", "admin"),
    ("admin.users.edit", "Benutzer bearbeiten", "admin"),
    ("admin.users.delete", "Benutzer löschen", "admin"),
    ("admin.roles.view", "Rollen anzeigen", "admin"),
    ("admin.roles.create", "Rollen erstellen", "admin"),
    ("admin.roles.edit", "Rollen bearbeiten", "admin"),
    ("admin.roles.delete", "Rollen löschen", "admin"),
    ("admin.permissions.manage", "Berechtigungen verwalten", "admin"),
    ("admin.jahrgaenge.assign", "Jahrgang-Zuweisungen", "admin"),
    ("admin.organizations.view", "Organisationen anzeigen", "admin"),
    ("admin.organizations.create", "Organisationen erstellen", "admin"),
    ("admin.organizations.edit", "Organisationen bearbeiten", "admin"),
    ("admin.organizations.delete", "Organisationen löschen", "admin"),
    ("admin.audit.view", "Protokoll anzeigen", "admin"),
]

ALL_PERMISSION_NAMES = [name for name, _, _ in CORE_PERMISSIONS]

_ADMIN_EXCLUDED = {
    "admin.jahrgaenge.assign",
    "admin.roles.create",
    "admin.roles.delete",
    "admin.permissions.manage",
    "admin.organizations.view",
    "admin.organizations.create",
    "admin.organizations.edit",
    "admin.organizations.delete",
    "admin.audit.view",
}

DEFAULT_ROLES = [
    {
        "name": ORG_ADMIN,
        "display_name": "Organisations-Admin",
        "description": "Vollzugriff auf die Organisation",
        "permissions": list(ALL_PERMISSION_NAMES),
    },
    {
        "name": ADMIN,
        "display_name": "Pastor",
        "description": "Verwaltet Konfis, Aktivitäten und Team",
        "permissions": [p for p in ALL_PERMISSION_NAMES if p not in _ADMIN_EXCLUDED],
    },
    {
        "name": TEAMER,
        "display_name": "Teamer:in",
        "description": "Unterstützt bei Konfi-Arbeit",
        "permissions": [
            "admin.users.view",
            "admin.users.create",
            "admin.users.edit",
            "konfis.view",
            "konfis.assign_points",
            "activities.view",
            "events.view",
            "jahrgaenge.view",
            "badges.view",
            "requests.view",
            "requests.approve",
            "requests.reject",
        ],
    },
    {
        "name": KONFI,
        "display_name": "Konfi",
        "description": "Konfirmand:in",
        "permissions": ["activities.view"],
    },
]
