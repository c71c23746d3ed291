from __future__ import annotations

# Hand-written fixes for units the builder cannot reconstruct from bytecode.
# Applied after every structural pass, so ids are unknown: use refTarget/refSource
# to link nodes inside one alteration and refCreate to link to existing nodes.
DEFAULT_ALTERATIONS: list[dict] = [
    {
        "name": "Frozen Heart",
        "alterations": [
            {
                "find": {"effect": "CARDPUZZLE"},
                "replaceNode": {
                    "type": "special",
                    "text": "",
                    "numContinues": 0,
                    "effects": ["SELECTCARD", "CARDPUZZLE"],
                    "children": [
                        {
                            "type": "choice",
                            "choiceLabel": "default",
                            "requirements": ["PUZZLE SUCCESS"],
                            "children": [
                                {
                                    "type": "dialogue",
                                    "text": (
                                        "Using one of your abilities, the ice fades quickly! Only the sizzling "
                                        "steam of the broken prison of ice now stands between you and the chest's "
                                        "contents. The chest pulses with a radiant heat, but is cool to the touch. "
                                        "In turn, the hum within the cavern rises to a deafening level."
                                    ),
                                    "numContinues": 2,
                                    "refCreate": "You smash at the ice repeatedly",
                                }
                            ],
                        },
                        {
                            "type": "choice",
                            "choiceLabel": "default",
                            "requirements": ["PUZZLE FAILURE"],
                            "children": [
                                {
                                    "type": "dialogue",
                                    "text": (
                                        "Try as you might, you find no solution to breaking the ice around the "
                                        "strange chest. With no other option left, you descend the icy walls back "
                                        "to your starting point. At the bottom of the steps the chamber splits "
                                        "into two passageways."
                                    ),
                                    "numContinues": 1,
                                    "refCreate": "A rhythmic pulse fills the cave",
                                }
                            ],
                        },
                    ],
                },
            }
        ],
    },
    {
        "name": "The Defiled Sanctum",
        "alterations": [
            {
                # GOTOAREA transition that the builder leaves as a dialogue loop
                "find": {"textOrLabel": "The heads turn in unison before you speak", "effect": "GOTOAREA: 91"},
                "modifyNode": {
                    "removeRef": True,
                    "removeNumContinues": True,
                    "removeText": True,
                    "removeChildren": True,
                    "type": "end",
                },
            }
        ],
    },
    {
        "name": "Rotting Residence",
        "alterations": [
            {
                "find": {"textOrLabel": "Investigate the large door"},
                "addRequirements": ["NOT COMPLETED: Go Upstairs"],
            },
            {
                "find": {"textOrLabel": "The hallway seems to have been part of a large residence"},
                "addChild": {
                    "type": "choice",
                    "choiceLabel": "Investigate the large door",
                    "requirements": ["COMPLETED: Go Upstairs"],
                    "children": [
                        {
                            "type": "dialogue",
                            "text": "It doesn't budge. You notice a small keyhole on the door.",
                            "numContinues": 0,
                            "children": [
                                {
                                    "type": "choice",
                                    "choiceLabel": "Unlock the door",
                                    "children": [
                                        {
                                            "type": "dialogue",
                                            "text": (
                                                "You slowly push open the door, as soon as you make a small "
                                                "opening, the air around you gets even worse. The Rot intensifies "
                                                "(+20 Rot)."
                                            ),
                                            "effects": ["AREASPECIAL: 20:Rot"],
                                            "numContinues": 1,
                                            "children": [
                                                {
                                                    "type": "choice",
                                                    "choiceLabel": "Continue Pushing",
                                                    "children": [
                                                        {
                                                            "type": "dialogue",
                                                            "text": (
                                                                "You fully open the door, revealing a small "
                                                                "chamber. Inside you find a corpse next to a "
                                                                "scrawled dark green circle covering the floor. "
                                                                "You find a small treasure chest in the back."
                                                            ),
                                                            "numContinues": 2,
                                                            "effects": [
                                                                "DELVEFROMANY: treasure",
                                                                "GOLD: 1",
                                                                "AREASPECIAL: 20:Rot",
                                                            ],
                                                            "children": [
                                                                {
                                                                    "type": "choice",
                                                                    "choiceLabel": "Leave through the portal",
                                                                    "children": [
                                                                        {
                                                                            "type": "end",
                                                                            "text": (
                                                                                "As you leave, the portal "
                                                                                "closes behind you."
                                                                            ),
                                                                        }
                                                                    ],
                                                                }
                                                            ],
                                                        }
                                                    ],
                                                }
                                            ],
                                        }
                                    ],
                                },
                                {
                                    "type": "choice",
                                    "choiceLabel": "Leave",
                                    "children": [
                                        {
                                            "type": "dialogue",
                                            "text": (
                                                "You can distinguish several rooms that are still accessible and "
                                                "a large closed door is visible in the back of the hallway."
                                            ),
                                            "numContinues": 0,
                                            # matches a choice label, not node text
                                            "refCreate": "Enter the portal",
                                        }
                                    ],
                                },
                            ],
                        }
                    ],
                },
            },
        ],
    },
]
