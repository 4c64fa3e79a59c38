"""GraphQL operations used by the GitLab adapter."""

_NOTE_FIELDS = """
    author {
      name
      username
      avatarUrl
    }
    body
    bodyHtml
    confidential
    createdAt
    discussion {
      id
      replyId
      createdAt
    }
    id
    position {
      x
      y
      newLine
      newPath
      oldLine
      oldPath
      filePath
    }
    resolvable
    resolved
    resolvedAt
    resolvedBy {
      username
      avatarUrl
    }
    system
    systemNoteIconName
    updatedAt
    userPermissions {
      readNote
      resolveNote
      awardEmoji
      createNote
    }
"""

_DISCUSSION_FIELDS = (
    """
    createdAt
    id
    notes {
      nodes {
"""
    + _NOTE_FIELDS
    + """
      }
    }
    replyId
    resolvable
    resolved
    resolvedAt
    resolvedBy {
      username
      avatarUrl
    }
"""
)

_USER_NODES = """
      nodes {
        id
        name
        username
        avatarUrl
      }
"""

GET_PULL_REQUEST = (
    """
query GetPullRequest($fullPath: ID!, $iid: String!) {
  currentUser {
    name
    username
    id
  }
  project(fullPath: $fullPath) {
    name
    mergeRequest(iid: $iid) {
      approvedBy {
        nodes {
          avatarUrl
          name
          username
        }
      }
      id
      iid
      createdAt
      sourceBranch
      targetBranch
      title
      description
      webUrl
      state
      mergedAt
      workInProgress
      reference
      projectId
      author {
        name
        username
        avatarUrl
      }
      diffRefs {
        baseSha
        headSha
        startSha
      }
      commitCount
      sourceProject {
        name
        webUrl
        fullPath
      }
      upvotes
      downvotes
      milestone {
        title
        id
        webPath
        dueDate
      }
      subscribed
      userDiscussionsCount
      discussionLocked
      assignees(last: 100) {"""
    + _USER_NODES
    + """
      }
      participants(last: 100) {"""
    + _USER_NODES
    + """
      }
      labels(last: 100) {
        nodes {
          id
          color
          textColor
          title
        }
      }
      currentUserTodos(last: 100) {
        nodes {
          action
          body
          id
          targetType
          state
        }
      }
      timeEstimate
      totalTimeSpent
      discussions {
        nodes {"""
    + _DISCUSSION_FIELDS
    + """
        }
      }
    }
  }
}
"""
)

CREATE_NOTE = (
    """
mutation CreateNote($noteableId: ID!, $body: String!, $iid: String!) {
  createNote(input: {noteableId: $noteableId, body: $body}) {
    clientMutationId
    errors
    note {
      project {
        mergeRequest(iid: $iid) {
          discussions(last: 5) {
            nodes {"""
    + _DISCUSSION_FIELDS
    + """
            }
          }
        }
      }
      id
      body
      createdAt
      confidential
      author {
        username
        avatarUrl
      }
      updatedAt
    }
  }
}
"""
)

DESTROY_NOTE = """
mutation DestroyNote($id: ID!) {
  destroyNote(input: {id: $id}) {
    clientMutationId
    note {
      id
    }
  }
}
"""

SET_WIP = """
mutation MergeRequestSetWip($projectPath: ID!, $iid: String!, $wip: Boolean!) {
  mergeRequestSetWip(input: {projectPath: $projectPath, iid: $iid, wip: $wip}) {
    errors
    mergeRequest {
      title
      workInProgress
    }
  }
}
"""

SET_LABELS = """
mutation MergeRequestSetLabels($projectPath: ID!, $iid: String!, $labelIds: [LabelID!]!) {
  mergeRequestSetLabels(input: {projectPath: $projectPath, iid: $iid, labelIds: $labelIds}) {
    errors
    mergeRequest {
      labels(last: 100) {
        nodes {
          id
          color
          textColor
          title
        }
      }
    }
  }
}
"""
