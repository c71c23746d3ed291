from __future__ import annotations

# Threshold is the percentage of the hub's non-exit choices a later node must
# re-offer to be folded back into the hub. Units without one use immediate mode.
DEFAULT_DIALOGUE_MENUS: dict[str, dict] = {
    "A Strange Painting": {
        "menuHubPattern": "Amongst the paintings near the",
        "menuExitPatterns": ["Make a note of the painting and leave"],
        "hubChoiceMatchThreshold": 60,
    },
    "Brightcandle Consul": {
        "menuHubPattern": "The Consul looks up and seems to think",
        "menuExitPatterns": ["Ask about the 'plan'"],
        "hubChoiceMatchThreshold": 50,
    },
    "Dawnbringer Ystel": {
        "menuHubPattern": "Ystel's figure exudes a sense",
        "menuExitPatterns": ["Leave"],
        "hubChoiceMatchThreshold": 100,
    },
    "Frozen Heart": {
        "menuHubPattern": "A rhythmic pulse fills the cave",
        "menuExitPatterns": ["Take the left tunnel", "Take the right tunnel"],
        # 0 would be accurate here but disables matching entirely.
        "hubChoiceMatchThreshold": 30,
        "passWhenOnlyExitPatternsAvailable": True,
    },
    "Heroes' Rest Cemetery Start": {
        "menuHubPattern": "The old wooden wheels creak",
        "menuExitPatterns": ["I have no more questions"],
        "hubChoiceMatchThreshold": 60,
    },
    "Historic Shard": {
        "menuHubPattern": "You stare into the mirror",
        "menuExitPatterns": ["Skip: We don't have time"],
        "hubChoiceMatchThreshold": 60,
    },
    "Isle of Talos": {
        "menuHubPattern": "Bolgar straightens his muddied",
        "menuExitPatterns": ["I have no more questions"],
        "hubChoiceMatchThreshold": 60,
    },
    "Kaius Tagdahar Death": {
        "menuHubPattern": "A quick strike ends the young",
        "menuExitPatterns": ["Let's go"],
        "hubChoiceMatchThreshold": 50,
    },
    "Statue of Ilthar II Death": {
        "menuHubPattern": "As a [[relation]]? Because you are",
        "menuExitPatterns": ["Skip: I've heard it all before"],
        "hubChoiceMatchThreshold": 60,
    },
    "Sunfall Meadows Start": {
        "menuHubPattern": "You find yourself journeying along",
        "menuExitPatterns": ["What about my pay?"],
        "hubChoiceMatchThreshold": 60,
    },
    "Rathael the Slain Death": {
        "menuHubPattern": "A chance to tangle with one of these",
        "menuExitPatterns": ["Fight: Confront the Seraph"],
    },
    "Rotting Residence": {
        "menuHubPattern": "You can distinguish several rooms",
        "menuExitPatterns": ["Leave"],
        "hubChoiceMatchThreshold": 80,
    },
    "The Boneyard": {
        "menuHubPattern": '"A parasite, one of the worst',
        "menuExitPatterns": ["Continue"],
        "hubChoiceMatchThreshold": 60,
    },
    "The Defiled Sanctum": {
        "menuHubPattern": '"First." one of the heads answers.',
        "menuExitPatterns": ["Tell me something else."],
        "hubChoiceMatchThreshold": 60,
    },
    "The Ferryman": {
        "menuHubPattern": '"I am but a guide for the souls',
        "menuExitPatterns": ["Back to other questions."],
        "hubChoiceMatchThreshold": 60,
    },
    "The Priestess": {
        "menuHubPattern": "In this mystical place",
        "menuExitPatterns": ["We have to keep moving."],
        "hubChoiceMatchThreshold": 60,
    },
    "Warfront Survivor": {
        "menuHubPattern": "Amidst the carnage you notice",
        "menuExitPatterns": ["Attack the Demon"],
        "hubChoiceMatchThreshold": 50,
    },
    "Weeping Woods Start": {
        "menuHubPattern": '"A wise decision. The dark lands',
        "menuExitPatterns": ["That is all I needed to know"],
        "hubChoiceMatchThreshold": 60,
    },
}

DEFAULT_PATH_CONVERGENCE: dict[str, dict] = {
    "Frozen Heart": {
        "skipPatterns": [
            "You make your way up to the peak, only to reveal a final challenge",
            "A large chasm greets you on the other side",
            "A masterful illusion",
            "The simple chamber presents two obvious choices",
        ],
    },
}
