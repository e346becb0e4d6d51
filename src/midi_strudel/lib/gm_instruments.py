"""General MIDI program (0-127) to Strudel sound names.

Sampled instruments (piano, vibraphone, marimba, ...) are preferred over
the ``gm_*`` soundfont voices where Strudel ships a good sample.
"""

from __future__ import annotations

from typing import Mapping

DRUM_CHANNEL = 9
DEFAULT_SOUND = "piano"

# fmt: off
GM_SOUNDS: dict[int, str] = {
    # Piano
    0: "piano",
    1: "steinway",
    2: "fmpiano",
    3: "gm_piano",
    4: "gm_epiano1",
    5: "gm_epiano2",
    6: "gm_harpsichord",
    7: "gm_clavinet",
    # Chromatic Percussion
    8: "gm_celesta",
    9: "gm_glockenspiel",
    10: "gm_music_box",
    11: "vibraphone",
    12: "marimba",
    13: "xylophone_medium_ff",
    14: "gm_tubular_bells",
    15: "gm_dulcimer",
    # Organ
    16: "gm_drawbar_organ",
    17: "gm_percussive_organ",
    18: "gm_rock_organ",
    19: "gm_church_organ",
    20: "gm_reed_organ",
    21: "gm_accordion",
    22: "harmonica",
    23: "gm_bandoneon",
    # Guitar
    24: "gm_acoustic_guitar_nylon",
    25: "gm_acoustic_guitar_steel",
    26: "gm_electric_guitar_jazz",
    27: "gm_electric_guitar_clean",
    28: "gm_electric_guitar_muted",
    29: "gm_overdriven_guitar",
    30: "gm_distortion_guitar",
    31: "gm_guitar_harmonics",
    # Bass
    32: "gm_acoustic_bass",
    33: "gm_electric_bass_finger",
    34: "gm_electric_bass_pick",
    35: "gm_fretless_bass",
    36: "gm_slap_bass_1",
    37: "gm_slap_bass_2",
    38: "gm_synth_bass_1",
    39: "gm_synth_bass_2",
    # Strings
    40: "gm_violin",
    41: "gm_viola",
    42: "gm_cello",
    43: "gm_contrabass",
    44: "gm_tremolo_strings",
    45: "gm_pizzicato_strings",
    46: "gm_orchestral_harp",
    47: "timpani",
    # Ensemble
    48: "gm_string_ensemble_1",
    49: "gm_string_ensemble_2",
    50: "gm_synth_strings_1",
    51: "gm_synth_strings_2",
    52: "gm_choir_aahs",
    53: "gm_voice_oohs",
    54: "gm_synth_choir",
    55: "gm_orchestra_hit",
    # Brass
    56: "gm_trumpet",
    57: "gm_trombone",
    58: "gm_tuba",
    59: "gm_muted_trumpet",
    60: "gm_french_horn",
    61: "gm_brass_section",
    62: "gm_synth_brass_1",
    63: "gm_synth_brass_2",
    # Reed
    64: "gm_soprano_sax",
    65: "gm_alto_sax",
    66: "gm_tenor_sax",
    67: "gm_baritone_sax",
    68: "gm_oboe",
    69: "gm_english_horn",
    70: "gm_bassoon",
    71: "gm_clarinet",
    # Pipe
    72: "gm_piccolo",
    73: "gm_flute",
    74: "recorder_alto_sus",
    75: "gm_pan_flute",
    76: "gm_blown_bottle",
    77: "gm_shakuhachi",
    78: "gm_whistle",
    79: "ocarina",
    # Synth Lead
    80: "gm_lead_1_square",
    81: "gm_lead_2_sawtooth",
    82: "gm_lead_3_calliope",
    83: "gm_lead_4_chiff",
    84: "gm_lead_5_charang",
    85: "gm_lead_6_voice",
    86: "gm_lead_7_fifths",
    87: "gm_lead_8_bass_lead",
    # Synth Pad
    88: "gm_pad_new_age",
    89: "gm_pad_warm",
    90: "gm_pad_poly",
    91: "gm_pad_choir",
    92: "gm_pad_bowed",
    93: "gm_pad_metallic",
    94: "gm_pad_halo",
    95: "gm_pad_sweep",
    # Synth Effects
    96: "gm_fx_rain",
    97: "gm_fx_soundtrack",
    98: "gm_fx_crystal",
    99: "gm_fx_atmosphere",
    100: "gm_fx_brightness",
    101: "gm_fx_goblins",
    102: "gm_fx_echoes",
    103: "gm_fx_sci_fi",
    # Ethnic
    104: "gm_sitar",
    105: "gm_banjo",
    106: "gm_shamisen",
    107: "gm_koto",
    108: "kalimba",
    109: "gm_bagpipe",
    110: "gm_fiddle",
    111: "gm_shanai",
    # Percussive
    112: "gm_tinkle_bell",
    113: "agogo",
    114: "gm_steel_drums",
    115: "woodblock",
    116: "gm_taiko_drum",
    117: "gm_melodic_tom",
    118: "gm_synth_drum",
    119: "gm_reverse_cymbal",
    # Sound Effects
    120: "gm_guitar_fret_noise",
    121: "gm_breath_noise",
    122: "gm_seashore",
    123: "gm_bird_tweet",
    124: "gm_telephone",
    125: "gm_helicopter",
    126: "gm_applause",
    127: "gm_gunshot",
}
# fmt: on


def program_to_sound(
    program: int | None,
    channel: int = 0,
    overrides: Mapping[int, str] | None = None,
) -> str:
    """Map a GM *program* on *channel* to a Strudel sound name.

    Drums (channel 9) and tracks without a program change use the default
    piano. *overrides* (program -> sound) take precedence over the table.
    """
    if program is None or channel == DRUM_CHANNEL:
        return DEFAULT_SOUND
    if overrides and program in overrides:
        return overrides[program]
    return GM_SOUNDS.get(program, DEFAULT_SOUND)
