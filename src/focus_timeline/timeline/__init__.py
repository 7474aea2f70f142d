"""
Timeline subsystem.

Components:
- models.py: TimelineNode, DaySession (ordered nodes + O(1) id lookup)
- scheduler.py: placement, reorder/lock rules, session-result consumption
- events.py: UI event values (victory, retreat, rest complete/suggested, incomplete exit)
- rest_prompt.py: suggests a break after enough accumulated focus
"""
