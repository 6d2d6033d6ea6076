"""Anki 2.1 (schema 11) collection DDL and seed rows.

Column names, types and index names must match what Anki's importer
expects; the JSON blobs in ``col`` hold exactly one note type, one deck
and one options group.
"""

import json

SCHEMA_VERSION = 11

# Fixed creation/modification stamps of the col row.
COL_CRT = 1388548800
COL_MOD = 1435645724219
COL_SCM = 1435645724215

DCONF_ID = 1

_LATEX_PRE = (
    "\\documentclass[12pt]{article}\n"
    "\\special{papersize=3in,5in}\n"
    "\\usepackage[utf8]{inputenc}\n"
    "\\usepackage{amssymb,amsmath}\n"
    "\\pagestyle{empty}\n"
    "\\setlength{\\parindent}{0in}\n"
    "\\begin{document}\n"
)
_LATEX_POST = "\\end{document}"

_CARD_CSS = (
    ".card {\n"
    " font-family: arial;\n"
    " font-size: 20px;\n"
    " text-align: center;\n"
    " color: black;\n"
    "background-color: white;\n"
    "}\n"
)

TABLES_SQL = """
CREATE TABLE col (
    id              integer primary key,
    crt             integer not null,
    mod             integer not null,
    scm             integer not null,
    ver             integer not null,
    dty             integer not null,
    usn             integer not null,
    ls              integer not null,
    conf            text not null,
    models          text not null,
    decks           text not null,
    dconf           text not null,
    tags            text not null
);
CREATE TABLE notes (
    id              integer primary key,
    guid            text not null,
    mid             integer not null,
    mod             integer not null,
    usn             integer not null,
    tags            text not null,
    flds            text not null,
    sfld            integer not null,
    csum            integer not null,
    flags           integer not null,
    data            text not null
);
CREATE TABLE cards (
    id              integer primary key,
    nid             integer not null,
    did             integer not null,
    ord             integer not null,
    mod             integer not null,
    usn             integer not null,
    type            integer not null,
    queue           integer not null,
    due             integer not null,
    ivl             integer not null,
    factor          integer not null,
    reps            integer not null,
    lapses          integer not null,
    left            integer not null,
    odue            integer not null,
    odid            integer not null,
    flags           integer not null,
    data            text not null
);
CREATE TABLE revlog (
    id              integer primary key,
    cid             integer not null,
    usn             integer not null,
    ease            integer not null,
    ivl             integer not null,
    lastIvl         integer not null,
    factor          integer not null,
    time            integer not null,
    type            integer not null
);
CREATE TABLE graves (
    usn             integer not null,
    oid             integer not null,
    type            integer not null
);
"""

INDEXES_SQL = """
ANALYZE sqlite_master;
INSERT INTO "sqlite_stat1" VALUES('col',NULL,'1');
CREATE INDEX ix_notes_usn on notes (usn);
CREATE INDEX ix_cards_usn on cards (usn);
CREATE INDEX ix_revlog_usn on revlog (usn);
CREATE INDEX ix_cards_nid on cards (nid);
CREATE INDEX ix_cards_sched on cards (did, queue, due);
CREATE INDEX ix_revlog_cid on revlog (cid);
CREATE INDEX ix_notes_csum on notes (csum);
"""


def escape_sql(value) -> str:
    """Escape a value for use inside a single-quoted SQL literal."""
    return str(value).replace("'", "''")


def _dumps(obj) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def collection_conf(deck_id: int, model_id: int) -> dict:
    return {
        "nextPos": 1,
        "estTimes": True,
        "activeDecks": [deck_id],
        "sortType": "noteFld",
        "timeLim": 0,
        "sortBackwards": False,
        "addToCur": True,
        "curDeck": deck_id,
        "newBury": True,
        "newSpread": 0,
        "dueCounts": True,
        "curModel": str(model_id),
        "collapseTime": 1200,
    }


def _field(name: str, ord_: int) -> dict:
    return {
        "name": name,
        "media": [],
        "sticky": False,
        "rtl": False,
        "ord": ord_,
        "font": "Arial",
        "size": 20,
    }


def note_models(deck_name: str, deck_id: int, model_id: int, mod: int) -> dict:
    """The single Front/Back note type, keyed by its id."""
    return {
        str(model_id): {
            "vers": [],
            "name": deck_name,
            "tags": ["Tag"],
            "did": deck_id,
            "usn": -1,
            "req": [[0, "all", [0]]],
            "flds": [_field("Front", 0), _field("Back", 1)],
            "sortf": 0,
            "latexPre": _LATEX_PRE,
            "tmpls": [
                {
                    "name": "Card 1",
                    "qfmt": "{{Front}}",
                    "did": None,
                    "bafmt": "",
                    "afmt": '{{FrontSide}}\n\n<hr id="answer">\n\n{{Back}}',
                    "ord": 0,
                    "bqfmt": "",
                }
            ],
            "latexPost": _LATEX_POST,
            "type": 0,
            "id": model_id,
            "css": _CARD_CSS,
            "mod": mod,
        }
    }


def decks(deck_name: str, deck_id: int, mod: int) -> dict:
    return {
        str(deck_id): {
            "desc": "",
            "name": deck_name,
            "extendRev": 50,
            "usn": 0,
            "collapsed": False,
            "newToday": [0, 0],
            "timeToday": [0, 0],
            "dyn": 0,
            "extendNew": 10,
            "conf": DCONF_ID,
            "revToday": [0, 0],
            "lrnToday": [0, 0],
            "id": deck_id,
            "mod": mod,
        }
    }


def deck_options() -> dict:
    """Neutral default scheduling options; cards are emitted as new."""
    return {
        str(DCONF_ID): {
            "name": "Default",
            "replayq": True,
            "lapse": {
                "leechFails": 8,
                "minInt": 1,
                "delays": [10],
                "leechAction": 0,
                "mult": 0,
            },
            "rev": {
                "perDay": 100,
                "fuzz": 0.05,
                "ivlFct": 1,
                "maxIvl": 36500,
                "ease4": 1.3,
                "bury": True,
                "minSpace": 1,
            },
            "timer": 0,
            "maxTaken": 60,
            "usn": 0,
            "new": {
                "perDay": 20,
                "delays": [1, 10],
                "separate": True,
                "ints": [1, 4, 7],
                "initialFactor": 2500,
                "bury": True,
                "order": 1,
            },
            "mod": 0,
            "id": DCONF_ID,
            "autoplay": True,
        }
    }


def collection_sql(deck_name: str, deck_id: int, model_id: int, mod: int) -> str:
    """DDL, the seeded col row and indices, as one transaction."""
    conf = escape_sql(_dumps(collection_conf(deck_id, model_id)))
    models = escape_sql(_dumps(note_models(deck_name, deck_id, model_id, mod)))
    deck_json = escape_sql(_dumps(decks(deck_name, deck_id, mod)))
    dconf = escape_sql(_dumps(deck_options()))

    col_row = (
        f'INSERT INTO "col" VALUES(1,{COL_CRT},{COL_MOD},{COL_SCM},'
        f"{SCHEMA_VERSION},0,0,0,'{conf}','{models}','{deck_json}','{dconf}','{{}}');\n"
    )
    return (
        "PRAGMA foreign_keys=OFF;\n"
        "BEGIN TRANSACTION;\n"
        + TABLES_SQL
        + col_row
        + INDEXES_SQL
        + "COMMIT;\n"
    )
